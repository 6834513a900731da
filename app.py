"""
Momentum API server
Serves the REST and GraphQL endpoints over http.server
"""

import http.server
import json
import socketserver
import sys
from datetime import datetime

from bson import ObjectId
from loguru import logger

import db
import routes
from config import PORT, DB_NAME, LOG_LEVEL, SEPOLIA_RPC_URL, CONTRACT_ADDRESS, GOOGLE_API_KEY


class JSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, ObjectId):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


class MomentumHandler(http.server.BaseHTTPRequestHandler):

    def send_json(self, status, payload):
        body = json.dumps(payload, cls=JSONEncoder).encode()
        self.send_response(status)
        self.send_header('Content-type', 'application/json')
        self.send_header('Content-Length', str(len(body)))
        self.send_header('Access-Control-Allow-Origin', '*')
        self.end_headers()
        self.wfile.write(body)

    def read_body(self):
        content_length = int(self.headers.get('Content-Length', 0) or 0)
        return self.rfile.read(content_length) if content_length > 0 else b''

    def handle_api(self):
        status, payload = routes.dispatch(
            self.command, self.path, dict(self.headers.items()), self.read_body()
        )
        self.send_json(status, payload)

    do_GET = handle_api
    do_POST = handle_api
    do_PUT = handle_api
    do_DELETE = handle_api

    def do_OPTIONS(self):
        self.send_response(204)
        self.send_header('Access-Control-Allow-Origin', '*')
        self.send_header('Access-Control-Allow-Methods', 'GET, POST, PUT, DELETE, OPTIONS')
        self.send_header('Access-Control-Allow-Headers', 'Authorization, Content-Type')
        self.end_headers()

    def log_message(self, format, *args):
        logger.debug(f"{self.address_string()} {format % args}")


class MomentumServer(socketserver.ThreadingMixIn, http.server.HTTPServer):
    daemon_threads = True
    allow_reuse_address = True


def configure_logging(level: str = LOG_LEVEL) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level, format="{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | {name}:{line} - {message}")


def main():
    configure_logging()
    logger.info("🔍 Connecting to MongoDB...")
    try:
        db.ping()
        db.ensure_indexes()
    except Exception as e:
        logger.error(f"❌ MongoDB connection failed: {e}")
        raise
    logger.info(f"✅ Connected to MongoDB ({DB_NAME})")

    with MomentumServer(("0.0.0.0", PORT), MomentumHandler) as httpd:
        logger.info("=" * 60)
        logger.info("✨ MOMENTUM API RUNNING")
        logger.info(f"🌐 URL: http://localhost:{PORT}")
        logger.info(f"🤖 Gemini priority suggestions: {'ENABLED' if GOOGLE_API_KEY else 'KEYWORD FALLBACK'}")
        logger.info(f"⛓️ Task ledger: {'ENABLED' if SEPOLIA_RPC_URL and CONTRACT_ADDRESS else 'NOT CONFIGURED'}")
        logger.info("=" * 60)
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            logger.info("👋 Shutting down...")
            db.get_client().close()


if __name__ == '__main__':
    main()
