"""routes/health.py — Liveness check. No auth, no database access."""

from __future__ import annotations

from flask import Blueprint, jsonify

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    return jsonify({"data": {"status": "ok"}, "warnings": []}), 200
