from flask import Flask, jsonify
from waitress import serve

from app import process_order
from config import ENV, WEB_HOST, WEB_PORT, utc_now_iso
from logger import get_logger

log = get_logger("web")

# waitress imports the module (waitress-serve web:app); nothing here may
# depend on __main__ having run
app = Flask(__name__)


@app.route("/health")
def health():
    return jsonify({"status": "ok", "env": ENV, "ts": utc_now_iso()})


@app.route("/orders/<int:doc_entry>/process", methods=["POST"])
def process(doc_entry: int):
    if doc_entry <= 0:
        return jsonify({"error": "DocEntry must be > 0"}), 400

    log.info(f"HTTP request to process DocEntry {doc_entry}")
    result = process_order(doc_entry)
    # failed runs still carry a full result body
    return jsonify(result.to_dict()), (200 if result.success else 422)


def main() -> None:
    log.info(f"Serving on {WEB_HOST}:{WEB_PORT} (env {ENV})")
    serve(app, host=WEB_HOST, port=WEB_PORT)


if __name__ == "__main__":
    main()
