"""FastAPI endpoints for rooms, practice sessions, the leaderboard and its history."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictInt, StrictStr

from . import __version__
from .archive import ArchivalService
from .config import BackendSettings, load_settings
from .errors import QuizError
from .quiz_config import QuizConfigService
from .rooms import RoomLifecycle
from .sessions import SessionLifecycle
from .state import (
    history_entry_to_record,
    participant_to_record,
    player_to_record,
    public_room_view,
    quiz_config_to_record,
    room_listing_view,
    room_result_to_record,
    session_to_record,
    standing_to_record,
)
from .store import LockRegistry, Store, create_store


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateRoomRequest(_CamelModel):
    name: str = Field(min_length=1, max_length=200, validation_alias=AliasChoices("name", "roomName"))
    password: str = Field(min_length=1, max_length=200, validation_alias=AliasChoices("password", "roomPassword"))


class CreateRoomResponse(_CamelModel):
    id: str
    name: str
    created_at: int = Field(serialization_alias="createdAt")
    host_token: str = Field(serialization_alias="hostToken")


class JoinRoomRequest(_CamelModel):
    group_name: str = Field(min_length=1, max_length=100, alias="groupName")


class QuestionPayload(_CamelModel):
    id: StrictStr | StrictInt | None = None
    text: str = Field(default="", validation_alias=AliasChoices("text", "question"))
    options: list[str] = Field(min_length=2)
    correct_answer: StrictInt | StrictStr = Field(alias="correctAnswer")
    time_limit_seconds: int | None = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("timeLimitSeconds", "timeLimit"),
    )

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
        }
        if self.time_limit_seconds is not None:
            record["timeLimitSeconds"] = self.time_limit_seconds
        return record


class StartGameRequest(_CamelModel):
    questions: list[QuestionPayload]


class SubmitAnswerRequest(_CamelModel):
    participant_id: str = Field(min_length=1, alias="participantId")
    question_index: StrictInt = Field(alias="questionIndex")
    value: StrictInt | StrictStr = Field(validation_alias=AliasChoices("value", "selectedAnswer", "answer"))
    time_spent: float | None = Field(default=None, ge=0, alias="timeSpent")


class HostRequest(_CamelModel):
    host_token: str = Field(min_length=1, alias="hostToken")


class StartSessionRequest(_CamelModel):
    group_name: str = Field(min_length=1, max_length=100, alias="groupName")


class UpdateScoreRequest(_CamelModel):
    score: StrictInt = Field(ge=0)


class QuizConfigRequest(_CamelModel):
    selected_questions: list[StrictStr | StrictInt] = Field(alias="selectedQuestions")


@dataclass(frozen=True)
class QuizServices:
    rooms: RoomLifecycle
    sessions: SessionLifecycle
    archive: ArchivalService
    quiz_config: QuizConfigService


def create_services(store: Store, server_salt: str, enforce_time_limits: bool = False) -> QuizServices:
    # sessions and archive share the leaderboard lock, so they share one registry
    locks = LockRegistry()
    return QuizServices(
        rooms=RoomLifecycle(
            store=store,
            server_salt=server_salt,
            locks=locks,
            enforce_time_limits=enforce_time_limits,
        ),
        sessions=SessionLifecycle(store=store, locks=locks),
        archive=ArchivalService(store=store, locks=locks),
        quiz_config=QuizConfigService(store=store, locks=locks),
    )


def _default_services(settings: BackendSettings) -> QuizServices:
    store = create_store(database_url=settings.database_url, data_dir=settings.data_dir)
    return create_services(
        store=store,
        server_salt=settings.server_salt,
        enforce_time_limits=settings.enforce_time_limits,
    )


def create_app(services: QuizServices | None = None) -> FastAPI:
    app = FastAPI(title="Quiz Room API", version=__version__)
    quiz_services = services if services is not None else _default_services(load_settings())
    app.state.services = quiz_services

    def get_services() -> QuizServices:
        return quiz_services

    @app.exception_handler(QuizError)
    async def quiz_error_handler(request: Request, exc: QuizError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "detail": exc.message})

    # rooms

    @app.post("/api/rooms", response_model=CreateRoomResponse, response_model_by_alias=True)
    def create_room(payload: CreateRoomRequest, svc: QuizServices = Depends(get_services)) -> CreateRoomResponse:
        created = svc.rooms.create_room(name=payload.name, password=payload.password)
        return CreateRoomResponse(
            id=created.room_id,
            name=created.name,
            created_at=created.created_at,
            host_token=created.host_token,
        )

    @app.get("/api/rooms")
    def list_rooms(svc: QuizServices = Depends(get_services)) -> list[dict[str, Any]]:
        return [room_listing_view(room) for room in svc.rooms.list_rooms()]

    @app.get("/api/rooms-all")
    def list_all_rooms(svc: QuizServices = Depends(get_services)) -> list[dict[str, Any]]:
        return [public_room_view(room) for room in svc.rooms.list_all_rooms()]

    @app.get("/api/rooms/{room_id}")
    def get_room(room_id: str, svc: QuizServices = Depends(get_services)) -> dict[str, Any]:
        return public_room_view(svc.rooms.get_room(room_id))

    @app.post("/api/rooms/{room_id}/join")
    def join_room(room_id: str, payload: JoinRoomRequest, svc: QuizServices = Depends(get_services)) -> dict[str, Any]:
        joined = svc.rooms.join_room(room_id=room_id, group_name=payload.group_name)
        return {
            "participant": participant_to_record(joined.participant),
            "room": {"id": joined.room.id, "name": joined.room.name, "status": joined.room.status},
        }

    @app.post("/api/rooms/{room_id}/start")
    def start_game(room_id: str, payload: StartGameRequest, svc: QuizServices = Depends(get_services)) -> dict[str, Any]:
        room = svc.rooms.start_game(room_id=room_id, questions=[q.to_record() for q in payload.questions])
        return {"room": public_room_view(room)}

    @app.post("/api/rooms/{room_id}/answer")
    def submit_answer(
        room_id: str,
        payload: SubmitAnswerRequest,
        svc: QuizServices = Depends(get_services),
    ) -> dict[str, Any]:
        result = svc.rooms.submit_answer(
            room_id=room_id,
            participant_id=payload.participant_id,
            question_index=payload.question_index,
            value=payload.value,
            time_spent=payload.time_spent,
        )
        return {"isCorrect": result.is_correct, "points": result.points, "currentScore": result.current_score}

    @app.post("/api/rooms/{room_id}/next")
    def advance_question(room_id: str, payload: HostRequest, svc: QuizServices = Depends(get_services)) -> dict[str, Any]:
        room = svc.rooms.advance_question(room_id=room_id, host_token=payload.host_token)
        return {"room": public_room_view(room)}

    @app.get("/api/rooms/{room_id}/ranking")
    def get_ranking(room_id: str, svc: QuizServices = Depends(get_services)) -> dict[str, Any]:
        ranking = svc.rooms.get_ranking(room_id)
        room = ranking.room
        return {
            "roomId": room.id,
            "roomName": room.name,
            "status": room.status,
            "currentQuestionIndex": room.current_question_index,
            "totalQuestions": len(room.questions),
            "participantCount": len(room.participants),
            "ranking": [standing_to_record(standing) for standing in ranking.standings],
            "gameResults": (
                [room_result_to_record(r) for r in room.game_results] if room.game_results is not None else None
            ),
        }

    @app.delete("/api/rooms/{room_id}")
    def delete_room(
        room_id: str,
        token: str = Query(min_length=1),
        svc: QuizServices = Depends(get_services),
    ) -> dict[str, Any]:
        svc.rooms.delete_room(room_id=room_id, host_token=token)
        return {"success": True}

    # standalone sessions and leaderboard

    @app.post("/api/sessions")
    def start_session(payload: StartSessionRequest, svc: QuizServices = Depends(get_services)) -> dict[str, Any]:
        return session_to_record(svc.sessions.start_session(payload.group_name))

    @app.put("/api/sessions/{session_id}/score")
    def update_score(
        session_id: str,
        payload: UpdateScoreRequest,
        svc: QuizServices = Depends(get_services),
    ) -> dict[str, Any]:
        return session_to_record(svc.sessions.update_score(session_id, payload.score))

    @app.post("/api/sessions/{session_id}/finish")
    def finish_session(session_id: str, svc: QuizServices = Depends(get_services)) -> dict[str, Any]:
        return player_to_record(svc.sessions.finish_session(session_id))

    @app.get("/api/sessions/active/{group_name}")
    def get_active_session(group_name: str, svc: QuizServices = Depends(get_services)) -> dict[str, Any] | None:
        session = svc.sessions.get_active_session(group_name)
        return session_to_record(session) if session is not None else None

    @app.get("/api/players")
    def get_leaderboard(svc: QuizServices = Depends(get_services)) -> list[dict[str, Any]]:
        return [player_to_record(player) for player in svc.sessions.get_leaderboard()]

    @app.delete("/api/players")
    def clear_leaderboard(svc: QuizServices = Depends(get_services)) -> dict[str, Any]:
        entry = svc.archive.clear_leaderboard()
        return {"success": True, "historyEntryId": entry.id if entry is not None else None}

    @app.delete("/api/data")
    def clear_all_data(svc: QuizServices = Depends(get_services)) -> dict[str, Any]:
        entry = svc.archive.clear_all_data()
        return {"success": True, "historyEntryId": entry.id if entry is not None else None}

    @app.get("/api/ranking-history")
    def get_history(svc: QuizServices = Depends(get_services)) -> list[dict[str, Any]]:
        return [history_entry_to_record(entry) for entry in svc.archive.get_history()]

    @app.delete("/api/ranking-history/{entry_id}")
    def delete_history_entry(entry_id: str, svc: QuizServices = Depends(get_services)) -> dict[str, Any]:
        svc.archive.delete_history_entry(entry_id)
        return {"success": True}

    # quiz question selection

    @app.get("/api/quiz-config")
    def get_quiz_config(svc: QuizServices = Depends(get_services)) -> dict[str, Any]:
        return quiz_config_to_record(svc.quiz_config.get_config())

    @app.post("/api/quiz-config")
    def save_quiz_config(payload: QuizConfigRequest, svc: QuizServices = Depends(get_services)) -> dict[str, Any]:
        config = svc.quiz_config.save_config(payload.selected_questions)
        message = "configuration saved" if config.is_valid else "partial selection saved"
        return {"message": message, "config": quiz_config_to_record(config)}

    @app.delete("/api/quiz-config")
    def reset_quiz_config(svc: QuizServices = Depends(get_services)) -> dict[str, Any]:
        config = svc.quiz_config.reset_config()
        return {"message": "configuration reset", "config": quiz_config_to_record(config)}

    @app.get("/api/health")
    def health() -> dict[str, Any]:
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat(), "version": __version__}

    return app


app = create_app()
