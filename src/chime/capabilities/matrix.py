# src/chime/capabilities/matrix.py

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from nio import AsyncClient, AsyncClientConfig, LoginResponse, RoomSendResponse

from ..core.models import PermissionState

logger = logging.getLogger(__name__)


def _session_path(store_dir: Path) -> Path:
    # Keep session tokens in a single predictable place under a gitignored local dir.
    return store_dir / "session.json"


def _load_json(path: Path) -> dict[str, Any]:
    raw = path.read_text("utf-8")
    val = json.loads(raw)
    if isinstance(val, dict):
        return val
    raise ValueError("Expected JSON object")


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False), "utf-8")
    os.replace(tmp, path)
    try:
        os.chmod(path, 0o600)
    except Exception:
        # Best-effort: not critical on Windows or restricted FS.
        pass


def _render_body(title: str, body: str, require_interaction: bool) -> str:
    text = f"{title}: {body}" if body else title
    if require_interaction:
        text += " (action required)"
    return text


class MatrixCapability:
    """
    Delivers notifications as messages in a Matrix room.

    Permission mapping:
    - UNSUPPORTED: homeserver / user id / room not configured
    - UNDETERMINED: no session yet (password login has not been attempted)
    - GRANTED: a session exists (restored from session.json or fresh login)
    - DENIED: the login attempt was rejected

    Why session.json:
    - It allows reusing the access token/device id across restarts without logging in again.
    - The file contains sensitive data and must never be committed (store under a gitignored dir).
    """

    def __init__(self, settings, *, client: AsyncClient | None = None) -> None:
        self._homeserver = (getattr(settings, "matrix_homeserver", "") or "").strip()
        self._user_id = (getattr(settings, "matrix_user_id", "") or "").strip()
        self._password = (getattr(settings, "matrix_password", "") or "").strip()
        self._room_id = (getattr(settings, "matrix_room_id", "") or "").strip()
        self._store_dir = Path(getattr(settings, "matrix_store_path", Path(".local/chime/matrix_store")))
        self._device_name = f"{getattr(settings, 'app_name', 'chime')} (Python)"

        self._client = client
        self._denied = False
        if self._client is None and self.check_support():
            self._client = self._restore_session()

    def check_support(self) -> bool:
        return bool(self._homeserver and self._user_id and self._room_id)

    def _new_client(self) -> AsyncClient:
        config = AsyncClientConfig(store_sync_tokens=False, encryption_enabled=False)
        return AsyncClient(self._homeserver, self._user_id, config=config)

    def _restore_session(self) -> AsyncClient | None:
        session_file = _session_path(self._store_dir)
        if not session_file.exists():
            return None
        try:
            data = _load_json(session_file)

            access_token = data.get("access_token")
            sess_user_id = data.get("user_id")
            device_id = data.get("device_id")

            if not access_token or not sess_user_id or not device_id:
                raise ValueError("session.json is missing required fields")

            client = self._new_client()
            client.access_token = str(access_token)
            client.user_id = str(sess_user_id)
            client.device_id = str(device_id)
            logger.info("Matrix session restored for %s", client.user_id)
            return client
        except Exception as e:
            logger.warning("Failed to restore Matrix session.json, a login will be needed: %r", e)
            return None

    def query_state(self) -> PermissionState:
        if not self.check_support():
            return PermissionState.UNSUPPORTED
        if self._client is not None and self._client.access_token:
            return PermissionState.GRANTED
        if self._denied:
            return PermissionState.DENIED
        return PermissionState.UNDETERMINED

    async def request_upgrade(self) -> PermissionState:
        state = self.query_state()
        if state != PermissionState.UNDETERMINED:
            return state

        if not self._password:
            logger.error(
                "Matrix session.json not found and password is not set. "
                "Set CHIME_MATRIX_PASSWORD once to bootstrap a session."
            )
            self._denied = True
            return PermissionState.DENIED

        client = self._new_client()
        logger.info("Logging in to Matrix to bootstrap a new session (device_name=%r)...", self._device_name)
        try:
            resp = await client.login(password=self._password, device_name=self._device_name)
        except Exception:
            await client.close()
            raise

        if not isinstance(resp, LoginResponse):
            logger.error("Matrix login failed: %r", resp)
            await client.close()
            self._denied = True
            return PermissionState.DENIED

        session_data = {
            "access_token": resp.access_token,
            "user_id": resp.user_id,
            "device_id": resp.device_id,
        }
        try:
            self._store_dir.mkdir(parents=True, exist_ok=True)
            _atomic_write_json(_session_path(self._store_dir), session_data)
            logger.info("Matrix session saved (user=%s)", resp.user_id)
        except Exception as e:
            # The session still works for this process; it just will not survive a restart.
            logger.error("Failed to write Matrix session.json: %r", e)

        self._client = client
        return PermissionState.GRANTED

    async def present(
            self,
            *,
            title: str,
            body: str,
            require_interaction: bool = False,
            icon: str | None = None,
    ) -> None:
        if self._client is None:
            raise RuntimeError("Matrix client is not logged in")

        resp = await self._client.room_send(
            room_id=self._room_id,
            message_type="m.room.message",
            content={"msgtype": "m.notice", "body": _render_body(title, body, require_interaction)},
            ignore_unverified_devices=True,
        )
        if not isinstance(resp, RoomSendResponse):
            raise RuntimeError(f"Matrix room_send failed: {resp!r}")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
