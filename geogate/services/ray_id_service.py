import contextvars
import logging
import uuid
from typing import Any
from typing import MutableMapping
from typing import Optional


NO_RAY_ID = "no-ray-id"

ray_id_context: contextvars.ContextVar[str] = contextvars.ContextVar("ray_id", default=NO_RAY_ID)


def generate_ray_id() -> str:
    """Return a 16-character lowercase hex id (first 64 bits of a UUID4)."""
    return uuid.uuid4().hex[:16]


class RayIDLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that stamps every record with the request's ray id.

    ``bind()`` layers request context on top, so once the gate knows the
    caller's ``client_ip`` and location every later record carries it. The
    ray id itself can't be overridden from a call site.
    """

    def __init__(self, logger: logging.Logger, ray_id: Optional[str] = None, context: Optional[dict] = None):
        super().__init__(logger, {**(context or {}), "ray_id": ray_id or NO_RAY_ID})

    @property
    def ray_id(self) -> str:
        return self.extra.get("ray_id", NO_RAY_ID) if self.extra else NO_RAY_ID

    def bind(self, **context: Any) -> "RayIDLoggerAdapter":
        bound = {k: v for k, v in (self.extra or {}).items() if k != "ray_id"}
        bound.update(context)
        return RayIDLoggerAdapter(self.logger, self.ray_id, bound)

    def process(self, msg: str, kwargs: MutableMapping[str, Any]) -> tuple[str, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **(kwargs.get("extra") or {}), "ray_id": self.ray_id}
        return msg, kwargs


def get_logger_with_ray_id(name: str, ray_id: Optional[str] = None) -> RayIDLoggerAdapter:
    return RayIDLoggerAdapter(logging.getLogger(name), ray_id or ray_id_context.get())
