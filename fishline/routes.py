from datetime import datetime

from flask import Blueprint, jsonify

bp = Blueprint("main", __name__)


@bp.get("/")
def home():
    return jsonify({
        "service": "Sistema de Produção Pesqueira",
        "status": "online",
        "timestamp": datetime.now().isoformat(),
    })


# Small health check
@bp.get("/healthz")
def healthz():
    return jsonify({"ok": True})
