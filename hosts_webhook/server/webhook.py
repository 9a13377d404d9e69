"""
Webhook server module for the Hosts Webhook Provider.

This module serves the external-dns webhook API: domain filter negotiation,
record listing, change application and endpoint adjustment.
"""

import json
import logging
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional, Tuple
from urllib.parse import urlsplit

from pydantic import ValidationError

from hosts_webhook.config.config import DomainFilter
from hosts_webhook.controller.reconciler import Reconciler
from hosts_webhook.models.models import Changes, Endpoint
from hosts_webhook.store.base import HostStoreError

WEBHOOK_MEDIA_TYPE = "application/external.dns.webhook+json;version=1"
JSON_MEDIA_TYPE = "application/json;version=1"


class WebhookHandler(BaseHTTPRequestHandler):
    """
    HTTP request handler for the webhook endpoints.
    """

    server: "WebhookHTTPServer"

    def __init__(self, *args, **kwargs):
        self.logger = logging.getLogger("hosts-webhook.webhook")
        super().__init__(*args, **kwargs)

    def do_GET(self):
        """
        Handle GET requests.
        """
        self._alter_content_type()
        path = self._route()
        if path == "/":
            self._handle_negotiate()
        elif path == "/records":
            self._handle_get_records()
        else:
            self._send_text(404, "Not Found")

    def do_POST(self):
        """
        Handle POST requests.
        """
        self._alter_content_type()
        self._body = self._read_body()
        path = self._route()
        if path == "/records":
            self._handle_post_records()
        elif path == "/adjustendpoints":
            self._handle_adjust_endpoints()
        else:
            self._send_text(404, "Not Found")

    def _route(self) -> str:
        path = urlsplit(self.path).path
        return path.rstrip("/") or "/"

    def _alter_content_type(self) -> None:
        """
        Rewrite the versioned webhook media type to plain JSON.
        """
        if self.headers.get("Content-Type") == WEBHOOK_MEDIA_TYPE:
            self.headers.replace_header("Content-Type", JSON_MEDIA_TYPE)
            if self.server.debug:
                self.logger.debug(
                    f"Modified Content-Type header {WEBHOOK_MEDIA_TYPE} -> {JSON_MEDIA_TYPE}"
                )

    def _handle_negotiate(self) -> None:
        domain_filter = self.server.domain_filter
        self.logger.debug(f"domain_filter: {domain_filter}")
        content_type = self.headers.get("Accept") or "application/json"
        self._send_json(200, domain_filter.to_wire(), content_type=content_type)

    def _handle_get_records(self) -> None:
        try:
            endpoints = self.server.reconciler.records()
        except HostStoreError as e:
            self.logger.error(f"Failed to read host table: {e}")
            self._send_text(500, "Failed to read host table")
            return
        self._send_json(200, [endpoint.to_wire() for endpoint in endpoints])

    def _handle_post_records(self) -> None:
        payload, error = self._read_json()
        if error:
            self._send_text(400, error)
            return

        try:
            changes = Changes.from_wire(payload)
        except (ValidationError, ValueError) as e:
            self.logger.info(f"Rejecting malformed change-set: {e}")
            self._send_text(400, f"Invalid change-set: {e}")
            return

        try:
            self.server.reconciler.reconcile(changes)
        except HostStoreError as e:
            self.logger.error(f"Failed to write host table: {e}")
            self._send_text(500, "Failed to write host table")
            return

        self.send_response(204)
        self.end_headers()

    def _handle_adjust_endpoints(self) -> None:
        payload, error = self._read_json()
        if error:
            self._send_text(400, error)
            return

        if not isinstance(payload, list):
            self._send_text(400, "Expected a JSON list of endpoints")
            return

        try:
            endpoints = [Endpoint.model_validate(item) for item in payload]
        except ValidationError as e:
            self.logger.info(f"Rejecting malformed endpoints: {e}")
            self._send_text(400, f"Invalid endpoints: {e}")
            return

        for endpoint in endpoints:
            self.logger.debug(
                f"-- endpoint dns_name={endpoint.dns_name}, targets={','.join(endpoint.targets)}, type={endpoint.record_type.value}"
            )

        adjusted = [endpoint.stripped().to_wire() for endpoint in endpoints]
        self._send_json(200, adjusted)

    def _read_body(self) -> Optional[bytes]:
        """Read the whole request body, None if Content-Length is invalid."""
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            return None
        return self.rfile.read(length) if length > 0 else b""

    def _read_json(self) -> Tuple[Any, Optional[str]]:
        """
        Decode the JSON request body.

        Returns:
            Tuple[Any, Optional[str]]: Decoded body, or an error message
        """
        content_type = self.headers.get("Content-Type")
        if not content_type:
            return None, "Missing Content-Type header"
        if not content_type.split(";", 1)[0].strip().lower().endswith("json"):
            return None, f"Unsupported Content-Type: {content_type}"

        if self._body is None:
            return None, "Invalid Content-Length header"

        try:
            return json.loads(self._body), None
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None, "Invalid JSON input"

    def _send_json(
        self, status: int, payload: Any, content_type: str = JSON_MEDIA_TYPE
    ) -> None:
        body = json.dumps(payload).encode()
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_text(self, status: int, text: str) -> None:
        body = text.encode()
        self.send_response(status)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        """
        Override log_message to use the application logger.
        """
        self.logger.debug(format % args)


class WebhookHTTPServer(ThreadingHTTPServer):
    """
    Threaded HTTP server carrying the webhook collaborators.

    Tracks in-flight requests so shutdown can wait for them.
    """

    def __init__(
        self,
        address: Tuple[str, int],
        reconciler: Reconciler,
        domain_filter: DomainFilter,
        debug: bool = False,
    ):
        self.reconciler = reconciler
        self.domain_filter = domain_filter
        self.debug = debug
        self._active = 0
        self._idle = threading.Condition()
        if ":" in address[0]:
            self.address_family = socket.AF_INET6
        super().__init__(address, WebhookHandler)

    def process_request_thread(self, request, client_address):
        with self._idle:
            self._active += 1
        try:
            super().process_request_thread(request, client_address)
        finally:
            with self._idle:
                self._active -= 1
                self._idle.notify_all()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for in-flight requests to finish.

        Args:
            timeout: Seconds to wait, None to wait forever

        Returns:
            bool: True if no request is running anymore
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._active == 0, timeout)


class WebhookServer:
    """
    HTTP server for the webhook endpoints.
    """

    def __init__(
        self,
        reconciler: Reconciler,
        domain_filter: DomainFilter,
        host: str = "127.0.0.1",
        port: int = 8888,
        debug: bool = False,
    ):
        """
        Initialize a WebhookServer.

        Args:
            reconciler: Reconciler applying changes to the host table
            domain_filter: Domain filter returned during negotiation
            host: Host to bind to
            port: Port to bind to, 0 for an ephemeral port
            debug: Whether to log header rewrites
        """
        self.reconciler = reconciler
        self.domain_filter = domain_filter
        self.host = host
        self.port = port
        self.debug = debug
        self.server = None
        self.thread = None
        self.logger = logging.getLogger("hosts-webhook.webhook")

    def start(self):
        """
        Start the webhook server.
        """
        self.server = WebhookHTTPServer(
            (self.host, self.port),
            self.reconciler,
            self.domain_filter,
            debug=self.debug,
        )
        self.port = self.server.server_address[1]
        self.thread = threading.Thread(target=self.server.serve_forever)
        self.thread.daemon = True
        self.thread.start()
        self.logger.info(f"Webhook: {self.host}:{self.port}")

    def stop(self, timeout: Optional[float] = None):
        """
        Stop accepting requests and wait for in-flight ones.

        Args:
            timeout: Grace period in seconds for in-flight requests
        """
        if self.server:
            self.server.shutdown()
            if not self.server.wait_idle(timeout):
                self.logger.warning(
                    f"Requests still running after {timeout}s grace period, closing anyway"
                )
            self.server.server_close()
            self.server = None
            self.logger.info("Webhook server stopped")
