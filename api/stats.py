"""Statistics API"""
from flask import Blueprint, jsonify, current_app

from services.errors import StoreError
from services.metrics import recognition_metrics

stats_bp = Blueprint('stats', __name__)


@stats_bp.route('/', methods=['GET'])
def get_stats():
    try:
        return jsonify({"stats": recognition_metrics(current_app.db)})
    except StoreError as e:
        return jsonify({"error": str(e)}), 503
