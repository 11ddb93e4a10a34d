"""
Custom Decorators
Rate limiting and authorization decorators
"""

from functools import wraps
from flask import request, jsonify, current_app
from flask_jwt_extended import verify_jwt_in_request, get_jwt
import time
from jenga_gateway.extensions import redis_client


def rate_limit(max_requests=100, window_seconds=60, key_prefix='rate_limit'):
    """
    Rate limiting decorator

    Args:
        max_requests: Maximum number of requests allowed, or the name of a
            config key holding it
        window_seconds: Time window in seconds
        key_prefix: Redis key prefix

    Usage:
        @rate_limit(max_requests=10, window_seconds=60)
        def my_endpoint():
            return "Success"
    """

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            limit = max_requests
            if isinstance(limit, str):
                limit = int(current_app.config.get(limit, 100))

            # Get client identifier (IP address)
            if request.headers.get('X-Forwarded-For'):
                client_id = request.headers.get('X-Forwarded-For').split(',')[0].strip()
            else:
                client_id = request.remote_addr

            current_window = int(time.time() / window_seconds)
            key = f'{key_prefix}:{client_id}:{current_window}'

            try:
                count = redis_client.get(key)
                if count is None:
                    count = 0
                else:
                    count = int(count)

                # Check if limit exceeded
                if count >= limit:
                    return jsonify({
                        'success': False,
                        'error': 'Rate limit exceeded',
                        'message': f'Maximum {limit} requests per {window_seconds} seconds',
                        'retry_after': window_seconds
                    }), 429

                redis_client.set(key, count + 1, ex=window_seconds)

            except Exception as e:
                # If Redis fails, allow the request (fail open)
                current_app.logger.warning(f'Rate limit check failed: {str(e)}')

            return f(*args, **kwargs)

        return decorated_function

    return decorator


def admin_required(f):
    """
    Require admin role in JWT

    Usage:
        @admin_required
        def my_endpoint():
            return "Success"
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        claims = get_jwt()

        if not claims.get('is_admin', False):
            return jsonify({
                'success': False,
                'error': 'Admin access required',
                'message': 'This endpoint requires admin privileges'
            }), 403

        return f(*args, **kwargs)

    return decorated_function
