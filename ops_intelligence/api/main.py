"""
FastAPI application for the operations intelligence engine.

Provides REST API endpoints for:
- Warming up and inspecting the prediction models
- Maintenance predictions and alerts
- Task assignment, shift scheduling and workforce forecasts
"""

from typing import List, Dict, Any, Optional
from datetime import datetime
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..context import EngineContext
from ..datastore import InMemoryDataStore
from ..exceptions import (
    EngineError,
    EquipmentNotFound,
    ModelNotLoaded,
    NoModelForType,
    UnknownModel,
)
from ..workforce import ScheduleConstraints, Timeframe, WorkforceFactors, WorkTask


API_VERSION = "0.1.0"


# Pydantic models for API
class TaskRequest(BaseModel):
    id: str
    title: Optional[str] = None
    priority: str = 'MEDIUM'
    estimated_hours: float
    required_skills: List[str] = []
    preferred_experience: float = 0
    description: Optional[str] = None
    location: Optional[str] = None
    equipment_required: List[str] = []
    deadline: Optional[datetime] = None
    shift_preference: Optional[str] = None
    min_workers: int = 1
    max_workers: int = 1
    cost_budget: Optional[float] = None


class AssignmentRequest(BaseModel):
    tasks: List[TaskRequest]


class ConstraintsRequest(BaseModel):
    shift_length: float = 8
    max_consecutive_days: int = 5
    min_rest_hours: float = 12
    coverage_24h: bool = False


class ScheduleRequest(BaseModel):
    worker_ids: List[str] = []  # empty schedules every active employee
    constraints: ConstraintsRequest = ConstraintsRequest()


class HealthResponse(BaseModel):
    status: str
    version: str
    initialized: bool
    models_loaded: Dict[str, bool]


ERROR_STATUS = [
    ((UnknownModel, EquipmentNotFound, NoModelForType), 404),
    ((ModelNotLoaded,), 409),
]


def status_for(error: EngineError) -> int:
    """HTTP status for an engine error; anything unlisted is a bad request."""
    for error_types, status in ERROR_STATUS:
        if isinstance(error, error_types):
            return status
    return 400


def create_app(context: Optional[EngineContext] = None) -> FastAPI:
    """
    Build the API around an engine context.

    Args:
        context: Engine context to serve; an empty in-memory store is used
            when omitted

    Returns:
        FastAPI application
    """
    context = context or EngineContext.create(InMemoryDataStore())

    app = FastAPI(
        title="Operations Intelligence API",
        description="API for predictive maintenance and workforce optimization",
        version=API_VERSION
    )
    app.state.context = context

    @app.exception_handler(EngineError)
    async def engine_error_handler(request: Request, exc: EngineError):
        return JSONResponse(status_code=status_for(exc), content={"detail": str(exc)})

    @app.get("/", response_model=HealthResponse)
    def health_check():
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            version=API_VERSION,
            initialized=context.is_initialized,
            models_loaded={m.id: m.is_trained for m in context.registry.list_models()}
        )

    @app.post("/engine/initialize")
    def initialize_engine():
        """
        Create and train every model. Does nothing once initialized.
        """
        trained = context.initialize()
        return {
            "status": "success",
            "trained": sorted(trained),
            "models": [m.id for m in context.registry.list_models()]
        }

    @app.get("/maintenance/predictions/{equipment_id}")
    def get_maintenance_prediction(equipment_id: str):
        """
        Predict the next maintenance need for one equipment unit.
        """
        return context.predict_maintenance(equipment_id).to_dict()

    @app.get("/maintenance/alerts")
    def get_maintenance_alerts():
        """
        Alerts for every active equipment unit that needs attention.
        """
        alerts = context.generate_alerts()
        return {"alerts": [a.to_dict() for a in alerts], "count": len(alerts)}

    @app.post("/maintenance/retrain")
    def retrain_maintenance_models():
        """
        Retrain every maintenance model on the current equipment history.
        """
        metrics = context.retrain_maintenance()
        return {
            "status": "success",
            "retrained": sorted(metrics),
            "metrics": {equipment_type: m.to_dict() for equipment_type, m in metrics.items()}
        }

    @app.post("/workforce/assignments")
    def optimize_assignments(request: AssignmentRequest):
        """
        Assign available workers to tasks.
        """
        try:
            tasks = [WorkTask.from_dict(t.model_dump()) for t in request.tasks]
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid task: {str(e)}")

        return context.optimize_assignments(tasks).to_dict()

    @app.post("/workforce/schedules")
    def optimize_schedules(request: ScheduleRequest):
        """
        Build shift schedules for the requested workers.
        """
        candidates = [*context.store.list_active_employees(),
                      *context.store.list_available_contractors()]
        if request.worker_ids:
            by_id = {c.id: c for c in candidates}
            missing = [w for w in request.worker_ids if w not in by_id]
            if missing:
                raise HTTPException(status_code=404, detail=f"Unknown or unavailable workers: {missing}")
            workers = [by_id[w] for w in request.worker_ids]
        else:
            workers = context.store.list_active_employees()

        constraints = ScheduleConstraints.from_dict(request.constraints.model_dump())
        schedules = context.optimize_schedules(workers, constraints)
        return {"schedules": [s.to_dict() for s in schedules], "count": len(schedules)}

    @app.get("/workforce/needs")
    def predict_workforce_needs(
        timeframe: Timeframe = Timeframe.WEEKLY,
        seasonality: bool = False,
        project_deadlines: List[datetime] = Query(default=[]),
        equipment_maintenance: List[str] = Query(default=[]),
        weather_conditions: str = 'GOOD',
        utilization: Optional[float] = None,
    ):
        """
        Forecast the headcount needed for a timeframe.
        """
        try:
            factors = WorkforceFactors(
                seasonality=seasonality,
                project_deadlines=project_deadlines,
                equipment_maintenance=equipment_maintenance,
                weather_conditions=weather_conditions,
                utilization=utilization,
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid weather_conditions: {str(e)}")

        return context.predict_workforce_needs(timeframe, factors).to_dict()

    @app.get("/models")
    def list_models() -> Dict[str, Any]:
        """
        Registered models and their training state.
        """
        return {"models": [m.to_dict() for m in context.registry.list_models()]}

    @app.get("/models/{model_id}/summary")
    def get_model_summary(model_id: str):
        """
        Human-readable description of one model.
        """
        return {"model_id": model_id, "summary": context.registry.summary(model_id)}

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
