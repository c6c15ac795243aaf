"""
Process-wide vSphere connection.

The function keeps one authenticated `VSphereClient` for the life of the
process. It is created lazily by the first invocation that needs it and
reused by every later one. `ensure_session` is the only way to reach it, and
check-then-create runs under a lock so concurrent first invocations end up
sharing a single client.

On SIGTERM/SIGINT the client is logged out once, best-effort.
"""
import logging
import signal
import threading
from functools import lru_cache
from typing import Callable, Dict, Optional

from vm_config_tagger.errors import VCenterConnectionError, VCenterLogoutError
from vm_config_tagger.settings import debug, get_settings
from vm_config_tagger.vcconfig import VCenterConfig
from vm_config_tagger.vsphere.client import VSphereClient

logger = logging.getLogger(__name__)

ClientFactory = Callable[[VCenterConfig], VSphereClient]

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def default_client_factory(cfg: VCenterConfig) -> VSphereClient:
    return VSphereClient.connect(cfg, timeout=get_settings().request_timeout)


class ConnectionManager:
    """Owns the single shared vSphere client."""

    def __init__(self, client_factory: Optional[ClientFactory] = None):
        self._client_factory = client_factory or default_client_factory
        # Reentrant: shutdown may run from a signal handler inside ensure_session
        self._lock = threading.RLock()
        self._client: Optional[VSphereClient] = None
        self._closed = False
        self._signals_installed = False
        self._previous_handlers: Dict[int, object] = {}

    @property
    def has_session(self) -> bool:
        return self._client is not None

    def ensure_session(self, cfg: VCenterConfig) -> VSphereClient:
        """Return the shared client, connecting on first use.

        Raises:
            VCenterConnectionError: login failed, or the manager was shut down
        """
        with self._lock:
            if self._closed:
                raise VCenterConnectionError("connection manager is shut down")

            if self._client is None:
                if debug():
                    logger.info("connecting to vSphere")
                # The factory either returns a fully logged-in client or raises
                client = self._client_factory(cfg)
                if self._closed:
                    # shut down by a signal during login
                    self._logout(client)
                    raise VCenterConnectionError("connection manager is shut down")
                self._client = client

            return self._client

    def shutdown(self) -> None:
        """Log out of vSphere. Runs at most once; never raises."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            client, self._client = self._client, None

        if client is None:
            logger.info("No vSphere session to log out of")
            return
        self._logout(client)

    @staticmethod
    def _logout(client: VSphereClient) -> None:
        try:
            client.logout()
        except VCenterLogoutError as e:
            logger.warning(f"vSphere logout failed: {e}")
            return
        logger.info("logged out of SOAP and REST APIs")

    def install_signal_handlers(self) -> bool:
        """Run `shutdown` on SIGTERM/SIGINT, then defer to the previous handler.

        Must be called from the main thread. Installing twice is a no-op.

        Returns:
            True if the handlers were installed by this call
        """
        with self._lock:
            if self._signals_installed:
                return False
            if threading.current_thread() is not threading.main_thread():
                logger.warning("Signal handlers can only be installed from the main thread")
                return False
            for signum in SHUTDOWN_SIGNALS:
                self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)
            self._signals_installed = True

        logger.debug("Installed vSphere logout signal handlers")
        return True

    def _handle_signal(self, signum, frame) -> None:
        if debug():
            logger.info(f"got signal: {signal.Signals(signum).name}, log out of vSphere")
        self.shutdown()

        previous = self._previous_handlers.get(signum)
        if callable(previous):
            previous(signum, frame)
        elif previous == signal.SIG_DFL:
            # Restore default disposition and re-deliver so the process exits
            signal.signal(signum, signal.SIG_DFL)
            signal.raise_signal(signum)


@lru_cache()
def get_connection_manager() -> ConnectionManager:
    """
    Get the process-wide connection manager.
    All invocations go through this instance so only one session exists.
    """
    return ConnectionManager()
