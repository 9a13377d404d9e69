"""
Health check module for the Hosts Webhook Provider.

This module provides the liveness endpoint, served on its own listener.
"""

import logging
import socket
from http.server import BaseHTTPRequestHandler, HTTPServer
from threading import Thread
from typing import Tuple
from urllib.parse import urlsplit


class HealthCheckHandler(BaseHTTPRequestHandler):
    """
    HTTP request handler for health check endpoints.
    """

    def __init__(self, *args, **kwargs):
        self.logger = logging.getLogger("hosts-webhook.health")
        super().__init__(*args, **kwargs)

    def do_GET(self):
        """
        Handle GET requests.
        """
        if urlsplit(self.path).path == "/healthz":
            self._respond(200, b"Ok!")
        else:
            self._respond(404, b"Not Found")

    def _respond(self, status: int, body: bytes):
        self.send_response(status)
        self.send_header("Content-type", "text/plain")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        """
        Override log_message to use the application logger.
        """
        self.logger.debug(format % args)


class HealthHTTPServer(HTTPServer):
    """HTTPServer that binds IPv6 hosts with the matching address family."""

    def __init__(self, address: Tuple[str, int]):
        if ":" in address[0]:
            self.address_family = socket.AF_INET6
        super().__init__(address, HealthCheckHandler)


class HealthCheckServer:
    """
    HTTP server for health check endpoints.
    """

    def __init__(self, host: str = "0.0.0.0", port: int = 8080):
        """
        Initialize a HealthCheckServer.

        Args:
            host: Host to bind to
            port: Port to bind to, 0 for an ephemeral port
        """
        self.host = host
        self.port = port
        self.server = None
        self.thread = None
        self.logger = logging.getLogger("hosts-webhook.health")

    def start(self):
        """
        Start the health check server.
        """
        self.server = HealthHTTPServer((self.host, self.port))
        self.port = self.server.server_address[1]
        self.thread = Thread(target=self.server.serve_forever)
        self.thread.daemon = True
        self.thread.start()
        self.logger.info(f"Health check: {self.host}:{self.port}/healthz")

    def stop(self):
        """
        Stop the health check server.
        """
        if self.server:
            self.server.shutdown()
            self.server.server_close()
            self.server = None
            self.logger.info("Health check server stopped")
