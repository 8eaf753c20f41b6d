#!/usr/bin/env python3
"""
Pipeline Board Data Service
---------------------------
JSON API over the SQLite client store. The board controller talks to it
through RestRosterSource.

Usage:
    python board_server.py --port 3000 --db /tmp/pipeline.db

API:
    GET  /api/clients-with-kanban        → { clients, count }
    POST /api/clients                    → JSON body: { name, organization?, email?, phone?, company? }
    DELETE /api/clients/<id>
    PUT  /api/kanban/client/<id>/column  → JSON body: { column, position? }
                                           Returns: { kanban: { client_id, column, position } }
    GET  /api/board                      → { stages, columns, counts, total }
    GET  /api/stages                     → { stages }
    GET  /health

Write endpoints require an X-API-Key header matching the configured api_secret
(config.yaml, or PIPELINE_API_SECRET).
"""

import hmac
import os
from functools import wraps
from pathlib import Path

from flask import Flask, jsonify, request

from dashboard.config import Config, setup_logging
from dashboard.pipeline.partition import partition_roster, stage_counts
from dashboard.pipeline.schema import Client
from dashboard.pipeline.stages import StageId, stage_metadata
from dashboard.pipeline.store import ClientStore

app = Flask(__name__)

# ── Config ───────────────────────────────────────────────────────────────────

def load_config() -> Config:
    """config.yaml (or PIPELINE_CONFIG) with PIPELINE_* environment overrides."""
    return Config.load(os.environ.get("PIPELINE_CONFIG"))


def get_db_path() -> Path:
    return Path(load_config().db_path)


def get_store() -> ClientStore:
    return ClientStore(str(get_db_path()))


# ── Auth ─────────────────────────────────────────────────────────────────────

def require_api_key(f):
    """Decorator: reject requests without a valid X-API-Key header."""
    @wraps(f)
    def decorated(*args, **kwargs):
        api_secret = load_config().api_secret
        if not api_secret:
            return jsonify({"error": "API secret not set"}), 503
        provided = request.headers.get("X-API-Key", "").strip()
        if not hmac.compare_digest(provided, api_secret):
            code = 401 if not provided else 403
            return jsonify({"error": "Unauthorized"}), code
        return f(*args, **kwargs)
    return decorated


# ── Routes ───────────────────────────────────────────────────────────────────

@app.route("/api/clients-with-kanban")
def api_clients_with_kanban():
    try:
        clients = get_store().list_clients_with_kanban()
    except Exception as e:
        app.logger.warning(f"list clients error: {e}")
        return jsonify({"error": str(e)}), 500
    return jsonify({"clients": clients, "count": len(clients)})


@app.route("/api/clients", methods=["POST"])
@require_api_key
def api_create_client():
    data = request.get_json(force=True, silent=True) or {}
    name = str(data.get("name", "")).strip()
    if not name:
        return jsonify({"error": "name is required"}), 400
    try:
        client = get_store().create_client(
            name=name,
            organization=str(data.get("organization", "")),
            email=str(data.get("email", "")),
            phone=str(data.get("phone", "")),
            company=str(data.get("company", "")),
        )
        return jsonify({"client": client}), 201
    except Exception as e:
        return jsonify({"error": str(e)}), 500


@app.route("/api/clients/<int:client_id>", methods=["DELETE"])
@require_api_key
def api_delete_client(client_id):
    try:
        if not get_store().delete_client(client_id):
            return jsonify({"error": "Client not found"}), 404
        return jsonify({"deleted": client_id})
    except Exception as e:
        return jsonify({"error": str(e)}), 500


@app.route("/api/kanban/client/<int:client_id>/column", methods=["PUT"])
@require_api_key
def api_update_client_column(client_id):
    """Move a client to another column (and optionally to an index in it)."""
    data = request.get_json(force=True, silent=True) or {}
    stage = StageId.from_str(data.get("column"))
    if stage is None:
        return jsonify({"error": f"Invalid column: {data.get('column')!r}"}), 400

    position = data.get("position")
    if position is not None:
        try:
            position = int(position)
        except (TypeError, ValueError):
            return jsonify({"error": "position must be an integer"}), 400
        if position < 0:
            return jsonify({"error": "position must be >= 0"}), 400

    try:
        entry = get_store().update_client_stage(client_id, stage, position)
    except Exception as e:
        return jsonify({"error": str(e)}), 500
    if entry is None:
        return jsonify({"error": "Client not found"}), 404
    return jsonify({"kanban": entry})


@app.route("/api/board")
def api_board():
    """Server-side partition, same grouping the board controller renders."""
    try:
        rows = get_store().list_clients_with_kanban()
    except Exception as e:
        app.logger.warning(f"board error: {e}")
        return jsonify({"error": str(e)}), 500

    partition = partition_roster(Client.from_dict(r) for r in rows)
    counts = stage_counts(partition)
    return jsonify({
        "stages":  stage_metadata(),
        "columns": {s.value: [c.to_dict() for c in col] for s, col in partition.items()},
        "counts":  {s.value: n for s, n in counts.items()},
        "total":   len(rows),
    })


@app.route("/api/stages")
def api_stages():
    return jsonify({"stages": stage_metadata()})


@app.route("/health")
def health():
    return jsonify({"status": "ok", "db": str(get_db_path())})


# ── Main ─────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import argparse

    cfg = load_config()

    parser = argparse.ArgumentParser(description="Pipeline Board Data Service")
    parser.add_argument("--host", default=cfg.host,
                        help="Bind address (use 0.0.0.0 to expose on network)")
    parser.add_argument("--port", type=int, default=cfg.port)
    parser.add_argument("--db", help="Path to pipeline.db (overrides PIPELINE_DB env var)")
    args = parser.parse_args()

    if args.db:
        os.environ["PIPELINE_DB"] = args.db

    setup_logging(cfg.log_level, name="board-server")
    app.logger.info(f"Serving {get_db_path()} on http://{args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=False, threaded=True)
