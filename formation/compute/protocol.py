"""Message envelope and dispatcher shared by every compute host.

Request::

    {"id": "msg_1", "type": "VALIDATE_POSITION", "payload": {...}}

Response::

    {"id": "msg_1", "type": "SUCCESS", "result": {...}}
    {"id": "msg_1", "type": "ERROR", "error": "Unknown message type: FOO"}

``handle_request`` runs inside the isolated context (worker process or the
inline fallback). It never raises: every failure becomes an ERROR response
for that request only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

import orjson

from formation.exceptions import PayloadError, UnknownMessageTypeError
from formation.models import FormationOptimizationRequest, PositionValidationRequest
from formation.optimizer import (
    optimize_formation_optimal_request,
    optimize_formation_request,
)
from formation.validator import validate_position_request

logger = logging.getLogger(__name__)

# Request types
VALIDATE_POSITION = "VALIDATE_POSITION"
OPTIMIZE_FORMATION = "OPTIMIZE_FORMATION"
OPTIMIZE_FORMATION_OPTIMAL = "OPTIMIZE_FORMATION_OPTIMAL"

# Response types
SUCCESS = "SUCCESS"
ERROR = "ERROR"


@dataclass(frozen=True)
class ComputeRequest:
    id: str
    type: str
    payload: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "type": self.type, "payload": self.payload}


@dataclass(frozen=True)
class ComputeResponse:
    id: str
    type: str
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.type == SUCCESS

    @classmethod
    def success(cls, request_id: str, result: Dict[str, Any]) -> ComputeResponse:
        return cls(id=request_id, type=SUCCESS, result=result)

    @classmethod
    def failure(cls, request_id: str, error: str) -> ComputeResponse:
        return cls(id=request_id, type=ERROR, error=error)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "type": self.type}
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ComputeResponse:
        if "id" not in data or "type" not in data:
            raise PayloadError("Response envelope requires 'id' and 'type'")
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            result=data.get("result"),
            error=data.get("error"),
        )


def encode_message(message: Mapping[str, Any]) -> bytes:
    """Serialize an envelope for the trip across the host boundary."""
    return orjson.dumps(message)


def decode_message(data: bytes) -> Dict[str, Any]:
    try:
        message = orjson.loads(data)
    except orjson.JSONDecodeError as exc:
        raise PayloadError(f"Undecodable message: {exc}") from exc
    if not isinstance(message, dict):
        raise PayloadError(f"Message must be an object, got {type(message).__name__}")
    return message


def _handle_validate_position(payload: Any) -> Dict[str, Any]:
    request = PositionValidationRequest.from_dict(payload)
    return validate_position_request(request).to_dict()


def _handle_optimize_formation(payload: Any) -> Dict[str, Any]:
    request = FormationOptimizationRequest.from_dict(payload)
    return optimize_formation_request(request).to_dict()


def _handle_optimize_formation_optimal(payload: Any) -> Dict[str, Any]:
    request = FormationOptimizationRequest.from_dict(payload)
    return optimize_formation_optimal_request(request).to_dict()


HANDLERS: Mapping[str, Callable[[Any], Dict[str, Any]]] = {
    VALIDATE_POSITION: _handle_validate_position,
    OPTIMIZE_FORMATION: _handle_optimize_formation,
    OPTIMIZE_FORMATION_OPTIMAL: _handle_optimize_formation_optimal,
}


def handle_request(message: Mapping[str, Any]) -> Dict[str, Any]:
    """Execute one request envelope and build its response envelope."""
    request_id = str(message.get("id", ""))
    message_type = message.get("type")

    handler = HANDLERS.get(message_type) if isinstance(message_type, str) else None
    if handler is None:
        error = UnknownMessageTypeError(message_type)
        logger.warning("Request %s rejected: %s", request_id, error)
        return ComputeResponse.failure(request_id, str(error)).to_dict()

    try:
        result = handler(message.get("payload"))
    except PayloadError as e:
        logger.warning("Request %s (%s) has a malformed payload: %s", request_id, message_type, e)
        return ComputeResponse.failure(request_id, str(e)).to_dict()
    except Exception as e:
        # Any computation failure is reported to the caller, never raised into the host
        logger.error("Request %s (%s) failed: %s", request_id, message_type, e, exc_info=True)
        return ComputeResponse.failure(request_id, str(e) or type(e).__name__).to_dict()

    return ComputeResponse.success(request_id, result).to_dict()
