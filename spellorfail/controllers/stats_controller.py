"""
Stats Controller

Handles per-user statistics endpoints.
"""

from flask import Blueprint, request, jsonify

from ..exceptions import RemotePersistenceError
from ..services.stats_service import get_stats_service
from ..utils.game_logger import game_logger

stats_bp = Blueprint('stats', __name__)


@stats_bp.route('/stats/<user_id>', methods=['GET'])
def get_stats(user_id):
    """Reconciled statistics for display."""
    try:
        stats_service = get_stats_service()
        if not stats_service:
            return jsonify({
                'success': False,
                'error': 'Stats service unavailable'
            }), 500

        game_logger.log_user_action(request, 'get_stats')

        stats = stats_service.get_stats(user_id)
        response_data = {
            'success': True,
            'stats': stats.to_dict()
        }

        game_logger.log_server_response(request, 'get_stats', True, response_data)
        return jsonify(response_data)

    except Exception as e:
        game_logger.log_error(request, e, 'get_stats')
        error_response = {'success': False, 'error': str(e)}
        game_logger.log_server_response(request, 'get_stats', False, error_response)
        return jsonify(error_response), 400


@stats_bp.route('/stats/<user_id>/refresh', methods=['POST'])
def refresh_stats(user_id):
    """Recompute the stored snapshots from records."""
    try:
        stats_service = get_stats_service()
        if not stats_service:
            return jsonify({
                'success': False,
                'error': 'Stats service unavailable'
            }), 500

        game_logger.log_user_action(request, 'refresh_stats')

        local_stats = stats_service.refresh_local_stats(user_id)
        remote_refreshed = False
        if stats_service.stats_repository is not None:
            try:
                stats_service.refresh_remote_stats(user_id)
                remote_refreshed = True
            except RemotePersistenceError as e:
                game_logger.log_persistence_event(
                    'remote_stats_refresh', user_id, success=False, error=str(e)
                )

        response_data = {
            'success': True,
            'local_stats': local_stats.to_dict(),
            'remote_refreshed': remote_refreshed,
            'stats': stats_service.get_stats(user_id).to_dict()
        }

        game_logger.log_server_response(request, 'refresh_stats', True, response_data)
        return jsonify(response_data)

    except Exception as e:
        game_logger.log_error(request, e, 'refresh_stats')
        error_response = {'success': False, 'error': str(e)}
        game_logger.log_server_response(request, 'refresh_stats', False, error_response)
        return jsonify(error_response), 400
