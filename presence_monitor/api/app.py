from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from loguru import logger
from pydantic import BaseModel, Field

from ..config import ConfigStore
from ..events.store import DecisionStore
from ..signaling import SignalingController


class ConfigUpdate(BaseModel):
    max_gap_ms: Optional[int] = Field(default=None, ge=0)
    min_continuous_ms: Optional[int] = Field(default=None, ge=0)
    min_resignal_gap_ms: Optional[int] = Field(default=None, ge=0)
    frame_interval_ms: Optional[int] = Field(default=None, ge=0)
    evidence_saving_enabled: Optional[bool] = None


def create_app(config_store: ConfigStore,
               decision_store: Optional[DecisionStore] = None,
               controller: Optional[SignalingController] = None) -> FastAPI:
    app = FastAPI(title="Presence Monitor Admin")
    app.state.config_store = config_store
    app.state.decision_store = decision_store
    app.state.controller = controller

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/config")
    def get_config() -> dict:
        return config_store.snapshot().to_dict()

    @app.put("/config")
    def put_config(update: ConfigUpdate) -> dict:
        changes = update.model_dump(exclude_none=True)
        try:
            config = config_store.update(**changes)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        if changes:
            logger.info(f"Configuration updated: {changes}")
        return config.to_dict()

    @app.get("/decisions")
    def decisions(limit: int = Query(100, ge=1, le=1000)) -> dict:
        if app.state.decision_store is None:
            return {"decisions": []}
        return {"decisions": app.state.decision_store.list(limit=limit)}

    @app.get("/stats")
    def stats() -> dict:
        if app.state.controller is None:
            raise HTTPException(status_code=404, detail="No active capture session")
        return app.state.controller.get_stats()

    return app
