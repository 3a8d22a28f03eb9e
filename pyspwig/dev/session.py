"""Dev session lifecycle against a shop."""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..api import SpwigClient
from ..exceptions import SpwigAPIError, SpwigConnectionError
from ..models import DevSession

logger = logging.getLogger(__name__)


class SessionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


@dataclass
class Credentials:
    """Admin credentials, used once to open a session."""

    username: str
    password: str = field(repr=False)


class SessionManager:
    """Owns the single DevSession of the running process.

    Credentials are passed to :meth:`connect` and not kept; only the token
    issued by the shop lives until :meth:`disconnect`.
    """

    def __init__(self, client: SpwigClient):
        """Initialize session manager.

        Args:
            client: Shop API client
        """
        self.client = client
        self._state = SessionState.DISCONNECTED
        self._session: Optional[DevSession] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[DevSession]:
        """The active session, or None."""
        return self._session

    @property
    def is_connected(self) -> bool:
        return self._state is SessionState.CONNECTED and self._session is not None

    def connect(
        self, theme_name: str, theme_path: str, credentials: Credentials
    ) -> DevSession:
        """Open a dev session.

        Args:
            theme_name: Theme name from manifest.json
            theme_path: Absolute local theme path
            credentials: Admin credentials

        Returns:
            The new DevSession

        Raises:
            SpwigConnectionError: If the shop refuses the connection
            RuntimeError: If a session is already open or opening
        """
        with self._lock:
            if self._state is not SessionState.DISCONNECTED:
                raise RuntimeError(
                    f"Cannot connect while session is {self._state.value}"
                )
            self._state = SessionState.CONNECTING

        try:
            response = self.client.connect(
                theme_name=theme_name,
                theme_path=theme_path,
                username=credentials.username,
                password=credentials.password,
            )
            session = DevSession.from_dict(response)
        except SpwigConnectionError:
            self._state = SessionState.DISCONNECTED
            raise
        except (SpwigAPIError, ValueError) as e:
            self._state = SessionState.DISCONNECTED
            raise SpwigConnectionError(str(e)) from e

        with self._lock:
            self._session = session
            self._state = SessionState.CONNECTED
        logger.debug(f"Connected, session expires at {session.expires_at}")
        return session

    def disconnect(self) -> bool:
        """Close the session on the shop. Never raises.

        Returns:
            True if the shop acknowledged the disconnect
        """
        with self._lock:
            if self._state is not SessionState.CONNECTED or self._session is None:
                return False
            self._state = SessionState.DISCONNECTING
            session = self._session

        acknowledged = False
        try:
            self.client.disconnect(session.token)
            acknowledged = True
        except Exception as e:
            logger.warning(f"Failed to disconnect cleanly: {e}")
        finally:
            with self._lock:
                self._session = None
                self._state = SessionState.DISCONNECTED
        return acknowledged
