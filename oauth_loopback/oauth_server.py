"""
Local loopback HTTP listener catching a single OAuth2 authorization redirect.

The listener binds a localhost port, serves exactly one request on a
background thread, hands the parsed outcome to the callback it was built with
and then shuts itself down. A new authorization attempt needs a new listener.
"""

import http.server
import itertools
import logging
import secrets
import socket
import socketserver
import threading
import urllib.parse
from typing import Callable, Optional, Sequence

from .constants import (
    CALLBACK_BIND_ADDRESS,
    CALLBACK_HOST,
    CALLBACK_PATH_BYTES,
    MAX_BIND_ATTEMPTS,
    REQUEST_READ_TIMEOUT,
    STOP_JOIN_TIMEOUT,
    SUCCESS_RESPONSE_TEXT,
    WAKE_CONNECT_TIMEOUT,
)
from .query_validator import AuthorizationOutcome, parse_authorization_query
from .utils import BindError, ListenerStateError, NotListeningError, ValidationError

logger = logging.getLogger(__name__)


class ListenerState:
    """Lifecycle of a CallbackListener. Transitions only move forward."""
    IDLE = 'idle'
    LISTENING = 'listening'
    STOPPED = 'stopped'


class OAuthCallbackHandler(http.server.BaseHTTPRequestHandler):
    """Handler for the OAuth redirect request."""

    # Seconds to wait for a connected client to send its request line.
    timeout = REQUEST_READ_TIMEOUT

    def __init__(self, *args, listener=None, **kwargs):
        self.listener = listener
        super().__init__(*args, **kwargs)

    def do_GET(self):
        """Handle GET request from OAuth provider redirect."""
        outcome = self.listener._outcome_for_path(self.path)
        if outcome is None:
            self._respond(404)
            return

        # Captured before writing: a client gone mid-write does not void the outcome.
        self.listener._capture(outcome)
        self._respond(200, SUCCESS_RESPONSE_TEXT.encode('utf-8'))

    def _respond(self, status: int, body: bytes = b''):
        try:
            self.send_response(status)
            self.send_header('Content-Type', 'text/plain; charset=utf-8')
            self.send_header('Content-Length', str(len(body)))
            self.send_header('Connection', 'close')
            self.end_headers()
            if body:
                self.wfile.write(body)
            self.wfile.flush()
        except OSError as e:
            logger.debug("Failed to write OAuth callback response: %s", e)

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


class _OAuthCallbackTCPServer(socketserver.TCPServer):
    # A fixed redirect port must be bindable again while the previous
    # attempt's connection sits in TIME_WAIT.
    allow_reuse_address = True

    def __init__(self, server_address, listener: 'CallbackListener'):
        self.listener = listener
        handler = lambda *args, **kwargs: OAuthCallbackHandler(
            *args,
            listener=listener,
            **kwargs
        )
        super().__init__(server_address, handler)

    def verify_request(self, request, client_address):
        # Connections accepted after stop() (including its own wake-up
        # connection) are closed without being handled.
        return self.listener._accepts_requests()

    def handle_error(self, request, client_address):
        logger.debug("Error while handling OAuth callback from %s", client_address, exc_info=True)


class CallbackListener:
    """
    Loopback endpoint for one OAuth2 authorization attempt.

    The callback fires on the listener's worker thread, never with a lock of
    the listener held. Callers that need the outcome on their own thread should
    hand it over through a thread-safe primitive such as utils.FutureOutcome.
    """

    def __init__(self,
                 on_outcome: Optional[Callable[[AuthorizationOutcome], None]],
                 host: str = CALLBACK_BIND_ADDRESS,
                 ports: Optional[Sequence[int]] = None,
                 max_bind_attempts: int = MAX_BIND_ATTEMPTS):
        """
        Initialize the callback listener.

        Args:
            on_outcome: Invoked once with the AuthorizationOutcome of a valid redirect
            host: Local address to bind
            ports: Preferred ports tried in order; None lets the OS pick an ephemeral port
            max_bind_attempts: Maximum number of bind attempts before raising BindError
        """
        self._on_outcome = on_outcome
        self._host = host
        self._ports = ports
        self._max_bind_attempts = max_bind_attempts

        self._lock = threading.Lock()
        self._state = ListenerState.IDLE
        self._stop_requested = False
        self._server = None
        self._thread = None
        self._path = None
        self._endpoint = None
        self._outcome = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.stop()

    @property
    def state(self) -> str:
        with self._lock:
            return self._state

    def is_listening(self) -> bool:
        return self.state == ListenerState.LISTENING

    @property
    def callback_endpoint(self) -> str:
        """
        The redirect URI the listener answers on.

        Raises:
            NotListeningError: If the listener is not listening
        """
        with self._lock:
            if self._state != ListenerState.LISTENING:
                raise NotListeningError(f"Callback listener is {self._state}, no endpoint available")
            return self._endpoint

    def start(self) -> str:
        """
        Bind a local endpoint and start waiting for the redirect in the background.

        Returns:
            The callback endpoint, e.g. "http://localhost:53127/Xk2..9a/"

        Raises:
            BindError: If no endpoint could be bound
            ListenerStateError: If the listener was already started or stopped
        """
        with self._lock:
            if self._state != ListenerState.IDLE:
                raise ListenerStateError(f"Callback listener is {self._state} and cannot be started again")

            server = self._bind()
            port = server.server_address[1]
            self._server = server
            self._path = '/%s/' % secrets.token_urlsafe(CALLBACK_PATH_BYTES)
            self._endpoint = 'http://%s:%d%s' % (CALLBACK_HOST, port, self._path)
            self._thread = threading.Thread(
                target=self._serve_once,
                name='oauth-callback-%d' % port,
                daemon=True
            )
            self._state = ListenerState.LISTENING
            self._thread.start()
            endpoint = self._endpoint

        logger.info("OAuth callback listener started on port %d", port)
        return endpoint

    def stop(self):
        """
        Stop the listener and release its socket.

        Safe to call several times and from any thread, including from within
        the outcome callback. Once it returns no callback invocation can start.
        """
        with self._lock:
            was_listening = self._state == ListenerState.LISTENING
            self._stop_requested = True
            self._state = ListenerState.STOPPED
            server = self._server
            thread = self._thread

        if not was_listening:
            return

        if thread is not None and thread is not threading.current_thread() and thread.is_alive():
            if server is not None:
                self._wake(server.server_address)
            thread.join(timeout=STOP_JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning("OAuth callback worker did not exit within %s seconds", STOP_JOIN_TIMEOUT)

        self._release()
        logger.debug("OAuth callback listener stopped")

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the listener's single request cycle is over.

        Args:
            timeout: Maximum seconds to wait, None waits forever

        Returns:
            True if the cycle is over, False if the timeout was reached

        Raises:
            ListenerStateError: If the listener was never started
        """
        thread = self._thread
        if thread is None:
            raise ListenerStateError("Callback listener was never started")
        thread.join(timeout=timeout)
        return not thread.is_alive()

    def _bind(self) -> _OAuthCallbackTCPServer:
        if self._ports is None:
            candidates = itertools.repeat(0)
        else:
            candidates = iter(self._ports)

        last_error = None
        attempts = 0
        for attempts, port in zip(range(1, self._max_bind_attempts + 1), candidates):
            try:
                return _OAuthCallbackTCPServer((self._host, port), self)
            except OSError as e:
                last_error = e
                logger.debug("Bind attempt %d on %s:%d failed: %s", attempts, self._host, port, e)

        if attempts == 0:
            raise BindError("Could not bind an OAuth callback endpoint on %s: no candidate ports" % self._host)
        raise BindError(
            "Could not bind an OAuth callback endpoint on %s after %d attempt(s): %s"
            % (self._host, attempts, last_error)
        )

    def _serve_once(self):
        try:
            if self._accepts_requests():
                self._server.handle_request()
        except (OSError, ValueError) as e:
            # The socket was closed under the worker by stop().
            logger.debug("OAuth callback listener aborted: %s", e)
        else:
            outcome = self._claim_outcome()
            if outcome is not None:
                self._dispatch(outcome)
        finally:
            self._release()

    def _accepts_requests(self) -> bool:
        with self._lock:
            return not self._stop_requested

    def _outcome_for_path(self, path: str) -> Optional[AuthorizationOutcome]:
        parsed = urllib.parse.urlsplit(path)
        if parsed.path.rstrip('/') != self._path.rstrip('/'):
            logger.warning("Rejected OAuth callback on unexpected path")
            return None

        try:
            return parse_authorization_query(parsed.query)
        except ValidationError as e:
            logger.warning("Rejected OAuth callback: %s", e)
            return None

    def _capture(self, outcome: AuthorizationOutcome):
        with self._lock:
            self._outcome = outcome

    def _claim_outcome(self) -> Optional[AuthorizationOutcome]:
        with self._lock:
            if self._stop_requested:
                return None
            return self._outcome

    def _dispatch(self, outcome: AuthorizationOutcome):
        if self._on_outcome is None:
            return
        try:
            self._on_outcome(outcome)
        except Exception:
            logger.exception("OAuth outcome callback failed")

    def _release(self):
        with self._lock:
            self._state = ListenerState.STOPPED
            server, self._server = self._server, None
        if server is not None:
            server.server_close()

    def _wake(self, address):
        host, port = address[:2]
        if host in ('', '0.0.0.0'):
            host = '127.0.0.1'
        try:
            with socket.create_connection((host, port), timeout=WAKE_CONNECT_TIMEOUT):
                pass
        except OSError as e:
            logger.debug("Could not wake OAuth callback listener: %s", e)
