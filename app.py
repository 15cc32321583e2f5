import asyncio
import atexit
import concurrent.futures
import logging
import threading

from flask import Flask, jsonify, request
from config import Config
from affect_sync.session import ChatSession

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config.from_object(Config)


class BackgroundLoop:
    """Event loop on a daemon thread. Every session coroutine runs here, so
    state changes happen on one thread while Flask serves from many."""

    def __init__(self, on_start=None):
        self._on_start = on_start
        self._startup = None
        self._loop = None
        self._thread = None
        self._lock = threading.Lock()

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        with self._lock:
            if self.running:
                return
            self._loop = asyncio.new_event_loop()
            self._thread = threading.Thread(
                target=self._loop.run_forever, name="session-loop", daemon=True
            )
            self._thread.start()
            if self._on_start is not None:
                self._startup = asyncio.run_coroutine_threadsafe(
                    self._on_start(), self._loop
                )

    def wait_started(self, timeout=None):
        """Block until the on_start coroutine of the current loop has finished."""
        if self._startup is not None:
            self._startup.result(timeout or Config.LOOP_CALL_TIMEOUT)

    def run(self, coro, timeout=None):
        """Run a coroutine on the loop and block until it finishes."""
        self.start()
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result(timeout or Config.LOOP_CALL_TIMEOUT)

    def stop(self):
        """Stop the loop for clean shutdown."""
        with self._lock:
            if not self.running:
                return
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout=5)
            self._loop.close()
            self._loop = None
            self._thread = None
            self._startup = None


# Single-user app: one session, one loop
session = ChatSession()
# First sync happens whenever the loop comes up, however the app is served
loop = BackgroundLoop(on_start=lambda: session.refresh())


@app.before_request
def ensure_loop():
    loop.start()


@app.errorhandler(concurrent.futures.TimeoutError)
def loop_timeout(e):
    return jsonify({"error": "Timed out waiting for the Psi backend"}), 504


@app.route("/api/state")
def state():
    return jsonify(session.state_view())


@app.route("/api/parameters", methods=["POST"])
def parameters():
    values = request.get_json(silent=True)
    if not isinstance(values, dict) or not values:
        return jsonify({"error": "Expected an object of parameter values"}), 400

    try:
        loop.run(session.update_parameters(values))
    except (KeyError, ValueError) as e:
        return jsonify({"error": str(e.args[0]) if e.args else str(e)}), 400

    return jsonify(session.state_view())


@app.route("/api/chat", methods=["POST"])
def chat():
    body = request.get_json(silent=True) or {}
    user_message = body.get("message", "")
    if not isinstance(user_message, str) or not user_message.strip():
        return jsonify({"error": "No message provided"}), 400

    answer = loop.run(session.submit(user_message, force=bool(body.get("force"))))
    if answer is None:
        reason = "busy" if session.dispatcher.busy else "backend offline"
        return jsonify({"error": f"Message not sent: {reason}"}), 409

    return jsonify(answer.to_dict())


@app.route("/api/messages")
def messages():
    after = request.args.get("after", 0, type=int)
    entries = session.log.since(after)
    return jsonify({
        "messages": [m.to_dict() for m in entries],
        "count": len(session.log),
    })


@app.route("/api/refresh", methods=["POST"])
def refresh():
    loop.run(session.refresh())
    return jsonify(session.state_view())


atexit.register(loop.stop)


if __name__ == "__main__":
    logging.basicConfig(
        level=Config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # A failed first sync just leaves the default state and the error flag
    loop.start()
    logger.info(f"Using Psi backend at {Config.PSI_BASE_URL}")
    app.run(
        host=Config.HOST,
        port=Config.PORT,
        debug=Config.DEBUG,
        threaded=True,
    )
