from __future__ import annotations

import os
import threading
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from adaptivebrain import DOMAINS, DifficultyEngine, EngineConfig, action_key, build_engine
from adaptivebrain.actions import action_to_dict


app = FastAPI(title="Adaptive Difficulty API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("ALLOW_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# One long-lived engine per game; sync endpoints run on a thread pool
config = EngineConfig.from_env()
engines: Dict[str, DifficultyEngine] = {key: build_engine(key, config) for key in DOMAINS}
locks: Dict[str, threading.Lock] = {key: threading.Lock() for key in DOMAINS}


class StartReq(BaseModel):
    level: int = Field(1, ge=1)
    # client clock (epoch ms); move timestamps must come from the same clock
    timestamp: Optional[float] = None


class StartRes(BaseModel):
    action_key: str
    action: Dict[str, Any]


class MoveReq(BaseModel):
    is_correct: bool
    timestamp: Optional[float] = None  # same clock as the round start timestamp


class FinishReq(BaseModel):
    completed: bool
    remaining_time: float = Field(0.0, ge=0.0)


def _engine(game: str) -> DifficultyEngine:
    engine = engines.get(game)
    if engine is None:
        raise HTTPException(status_code=404, detail=f"unknown game: {game}")
    return engine


@app.post("/{game}/rounds", response_model=StartRes)
def start_round(game: str, req: StartReq):
    engine = _engine(game)
    with locks[game]:
        action = engine.start_round(req.level, req.timestamp)
    return StartRes(action_key=action_key(action), action=action_to_dict(action))


@app.post("/{game}/moves")
def record_move(game: str, req: MoveReq):
    engine = _engine(game)
    with locks[game]:
        engine.record_move(req.is_correct, req.timestamp)
    return {"ok": True}


@app.post("/{game}/matches")
def record_match(game: str):
    engine = _engine(game)
    with locks[game]:
        engine.record_match()
    return {"ok": True}


@app.post("/{game}/rounds/finish")
def finish_round(game: str, req: FinishReq):
    engine = _engine(game)
    with locks[game]:
        outcome = engine.finish_round(req.completed, req.remaining_time)
    if outcome is None:
        raise HTTPException(status_code=409, detail="no round in progress")
    return outcome.to_dict()


@app.post("/{game}/rounds/abandon")
def abandon_round(game: str):
    engine = _engine(game)
    with locks[game]:
        outcome = engine.abandon_round()
    if outcome is None:
        raise HTTPException(status_code=409, detail="no round in progress")
    return outcome.to_dict()


@app.get("/{game}/stats")
def stats(game: str):
    engine = _engine(game)
    with locks[game]:
        return engine.stats()


@app.get("/healthz")
def healthz():
    return {"status": "healthy"}
