"""
Health Check Endpoint
"""

from flask import Blueprint, jsonify
from datetime import datetime
from sqlalchemy import text

from jenga_gateway.extensions import db

health_bp = Blueprint('health', __name__)


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Basic health check endpoint

    Returns:
        200 if the database is reachable
        503 otherwise
    """
    health_status = {
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': 'jenga-gateway',
        'version': '1.0.0'
    }

    try:
        db.session.execute(text('SELECT 1'))
        health_status['checks'] = {
            'database': {
                'status': 'healthy',
                'message': 'Database connection OK'
            }
        }
    except Exception as e:
        health_status['status'] = 'unhealthy'
        health_status['checks'] = {
            'database': {
                'status': 'unhealthy',
                'message': f'Database error: {str(e)}'
            }
        }
        return jsonify(health_status), 503

    return jsonify(health_status), 200
