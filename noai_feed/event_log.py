from __future__ import annotations

import json
import traceback
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TextIO

_MESSAGE_LIMIT = 2000
_TRACEBACK_LIMIT = 12000


def _clip(text: str, limit: int) -> str:
    s = str(text or "")
    return s if len(s) <= limit else s[: limit - 1] + "…"


class EventLog:
    """
    Append-only JSONL log of what a feed/editor session did.

    One object per line: ts, level, event, session_id, then user_id and
    post_id when known and the keyword data under "data". A log built without
    a path records nothing.
    """

    def __init__(
        self,
        path: str | Path | None,
        *,
        overwrite: bool = False,
        session_id: str | None = None,
    ) -> None:
        self._path = Path(path) if path is not None else None
        self._truncate = bool(overwrite)
        self._session_id = (session_id or "").strip() or uuid.uuid4().hex
        self._user_id: str | None = None
        self._fp: TextIO | None = None

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        overwrite: bool = False,
        session_id: str | None = None,
    ) -> "EventLog":
        log = cls(path, overwrite=overwrite, session_id=session_id)
        log._file()
        return log

    @property
    def session_id(self) -> str:
        return self._session_id

    def close(self) -> None:
        fp, self._fp = self._fp, None
        if fp is not None:
            fp.close()

    def __enter__(self) -> "EventLog":
        self._file()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    def set_user_id(self, user_id: str | None) -> None:
        """Attach the signed-in user to every later event; None clears it."""
        self._user_id = (user_id or "").strip() or None

    def info(self, event: str, *, post_id: str | None = None, **data: Any) -> None:
        self.log("INFO", event, post_id=post_id, **data)

    def warning(self, event: str, *, post_id: str | None = None, **data: Any) -> None:
        self.log("WARN", event, post_id=post_id, **data)

    def exception(self, event: str, *, exc: BaseException, post_id: str | None = None, **data: Any) -> None:
        tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        data["error"] = {
            "type": type(exc).__name__,
            "message": _clip(str(exc), _MESSAGE_LIMIT),
            "traceback": _clip(tb, _TRACEBACK_LIMIT),
        }
        self.log("ERROR", event, post_id=post_id, **data)

    def log(self, level: str, event: str, *, post_id: str | None = None, **data: Any) -> None:
        fp = self._file()
        if fp is None:
            return

        record: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": (level or "").strip().upper() or "INFO",
            "event": (event or "").strip() or "event",
            "session_id": self._session_id,
        }
        if self._user_id:
            record["user_id"] = self._user_id
        if post_id and post_id.strip():
            record["post_id"] = post_id.strip()
        if data:
            record["data"] = data

        fp.write(json.dumps(record, ensure_ascii=False, sort_keys=True, separators=(",", ":"), default=str) + "\n")
        fp.flush()

    def _file(self) -> TextIO | None:
        if self._fp is None and self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            # only the first open of an overwrite log truncates
            mode = "w" if self._truncate else "a"
            self._truncate = False
            self._fp = self._path.open(mode, encoding="utf-8", newline="\n")
        return self._fp


class NullEventLog(EventLog):
    """EventLog with nowhere to write; used when no log path is configured."""

    def __init__(self, *, session_id: str | None = None) -> None:
        super().__init__(None, session_id=session_id)
