"""Messages exchanged between the UI layer and the velocity engine.

Each message kind is its own model with a literal ``type`` tag, so a raw
payload validates into exactly one variant.
"""

from datetime import datetime
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from taskvelocity.models.metrics import SpecProgress, VelocityMetrics
from taskvelocity.models.velocity import ImportSummary


class TaskCompletedMessage(BaseModel):
    type: Literal["task_completed"] = "task_completed"
    spec_id: str
    task_text: str
    is_required: bool = True
    timestamp: Optional[datetime] = None
    author: Optional[str] = None
    author_email: Optional[str] = None
    total_tasks: Optional[int] = Field(None, description="Spec total, when the detector knows it")


class TaskUncompletedMessage(BaseModel):
    type: Literal["task_uncompleted"] = "task_uncompleted"
    spec_id: str
    task_text: str
    timestamp: Optional[datetime] = None
    total_tasks: Optional[int] = None


class ImportHistoryMessage(BaseModel):
    type: Literal["import_history"] = "import_history"
    repo_root: Path
    tracked_document_paths: List[str] = Field(default_factory=list)


class RequestMetricsMessage(BaseModel):
    type: Literal["request_metrics"] = "request_metrics"
    current_specs: List[SpecProgress] = Field(default_factory=list)


class ResetMessage(BaseModel):
    type: Literal["reset"] = "reset"


InboundMessage = Annotated[
    Union[
        TaskCompletedMessage,
        TaskUncompletedMessage,
        ImportHistoryMessage,
        RequestMetricsMessage,
        ResetMessage,
    ],
    Field(discriminator="type"),
]


class MetricsSnapshotMessage(BaseModel):
    type: Literal["metrics_snapshot"] = "metrics_snapshot"
    metrics: VelocityMetrics


class ImportCompletedMessage(BaseModel):
    type: Literal["import_completed"] = "import_completed"
    summary: ImportSummary


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    message: str


OutboundMessage = Annotated[
    Union[MetricsSnapshotMessage, ImportCompletedMessage, ErrorMessage],
    Field(discriminator="type"),
]

_inbound_adapter: TypeAdapter = TypeAdapter(InboundMessage)


def parse_inbound(payload: Dict[str, Any]) -> Union[
    TaskCompletedMessage,
    TaskUncompletedMessage,
    ImportHistoryMessage,
    RequestMetricsMessage,
    ResetMessage,
]:
    """Validate a raw payload into an inbound message.

    Args:
        payload: Decoded message dictionary with a ``type`` key

    Returns:
        The matching message model

    Raises:
        pydantic.ValidationError: If the type is unknown or fields are invalid
    """
    return _inbound_adapter.validate_python(payload)
