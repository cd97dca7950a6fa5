from __future__ import annotations

import smtplib
import ssl
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import Deque, Optional, Protocol

import structlog

from app.core.email_config import SmtpTransportConfig

logger = structlog.get_logger(__name__)


class MailTransport(Protocol):
    """Anything that can deliver a fully composed message."""

    def verify(self) -> None:
        ...

    def send(self, message: EmailMessage) -> str:
        ...


@dataclass
class _PooledConnection:
    smtp: smtplib.SMTP
    sent: int = 0
    opened_at: float = field(default_factory=time.monotonic)


def _tls_context(config: SmtpTransportConfig) -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    if not config.verify_tls:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


class SmtpTransport:
    """
    Pooled SMTP transport on top of smtplib.

    - At most ``max_connections`` sends are in flight at once.
    - A connection is closed after ``max_messages`` deliveries.
    - Deliveries are throttled to ``rate_limit`` messages per second.

    All methods block; call them from a worker thread in async code.
    """

    def __init__(self, config: SmtpTransportConfig, timeout: float = 30.0) -> None:
        self.config = config
        self.timeout = timeout
        self._slots = threading.BoundedSemaphore(max(1, config.max_connections))
        self._idle: Deque[_PooledConnection] = deque()
        self._lock = threading.Lock()
        self._min_interval = 1.0 / config.rate_limit if config.rate_limit > 0 else 0.0
        self._next_send_at = 0.0

    def _connect(self) -> smtplib.SMTP:
        context = _tls_context(self.config)
        if self.config.use_tls:
            server: smtplib.SMTP = smtplib.SMTP_SSL(
                self.config.host, self.config.port, timeout=self.timeout, context=context
            )
        else:
            server = smtplib.SMTP(self.config.host, self.config.port, timeout=self.timeout)
            server.starttls(context=context)
        server.login(self.config.username, self.config.password)
        return server

    def _checkout(self) -> _PooledConnection:
        with self._lock:
            if self._idle:
                return self._idle.popleft()
        return _PooledConnection(smtp=self._connect())

    def _checkin(self, conn: _PooledConnection) -> None:
        if conn.sent >= self.config.max_messages:
            self._discard(conn)
            return
        with self._lock:
            self._idle.append(conn)

    @staticmethod
    def _discard(conn: _PooledConnection) -> None:
        try:
            conn.smtp.quit()
        except (smtplib.SMTPException, OSError):
            conn.smtp.close()

    def _throttle(self) -> None:
        if not self._min_interval:
            return
        with self._lock:
            now = time.monotonic()
            wait = self._next_send_at - now
            self._next_send_at = max(now, self._next_send_at) + self._min_interval
        if wait > 0:
            time.sleep(wait)

    def verify(self) -> None:
        """Open a fresh connection, authenticate and close it. Raises on failure."""
        server = self._connect()
        try:
            code, _ = server.noop()
            if code != 250:
                raise smtplib.SMTPResponseException(code, b"NOOP rejected")
        finally:
            server.quit()

    def send(self, message: EmailMessage) -> str:
        with self._slots:
            self._throttle()
            conn = self._checkout()
            try:
                conn.smtp.send_message(message)
            except Exception:
                # A failed session is never returned to the pool
                self._discard(conn)
                raise
            conn.sent += 1
            self._checkin(conn)
        return message.get("Message-ID", "")

    def close(self) -> None:
        with self._lock:
            idle = list(self._idle)
            self._idle.clear()
        for conn in idle:
            self._discard(conn)
        logger.info("smtp_pool_closed", connections=len(idle))


def build_transport(config: Optional[SmtpTransportConfig]) -> Optional[SmtpTransport]:
    if config is None:
        return None
    return SmtpTransport(config)
