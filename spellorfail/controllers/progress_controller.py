"""
Progress Controller

Handles saved game records: loading one puzzle's progress, saving a
record sent by the client, and the per-user play history.
"""

from flask import Blueprint, request, jsonify

from ..config.game_settings import HISTORY_LIMIT
from ..exceptions import LocalPersistenceError, RecordValidationError
from ..models.record import GameRecord
from ..services.puzzle_service import get_puzzle_provider
from ..services.record_store import get_record_store
from ..services.scorer import rescore_record
from ..services.stats_service import get_stats_service
from ..utils.game_logger import game_logger

progress_bp = Blueprint('progress', __name__)


@progress_bp.route('/progress/<user_id>/<puzzle_id>', methods=['GET'])
def load_progress(user_id, puzzle_id):
    """Load the saved record for one puzzle."""
    try:
        record_store = get_record_store()
        if not record_store:
            return jsonify({
                'success': False,
                'error': 'Record store unavailable'
            }), 500

        game_logger.log_user_action(request, 'load_progress', puzzle_id=puzzle_id)

        record = record_store.load(user_id, puzzle_id)
        response_data = {
            'success': True,
            'record': record.to_dict() if record else None
        }

        game_logger.log_server_response(
            request, 'load_progress', True, response_data, found=record is not None
        )
        return jsonify(response_data)

    except Exception as e:
        game_logger.log_error(request, e, 'load_progress')
        error_response = {'success': False, 'error': str(e)}
        game_logger.log_server_response(request, 'load_progress', False, error_response)
        return jsonify(error_response), 400


@progress_bp.route('/progress', methods=['POST'])
def save_progress():
    """Save a client-supplied game record."""
    try:
        record_store = get_record_store()
        puzzle_provider = get_puzzle_provider()
        if not record_store or not puzzle_provider:
            return jsonify({
                'success': False,
                'error': 'Record store unavailable'
            }), 500

        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({
                'success': False,
                'error': 'Record body must be a JSON object'
            }), 400

        game_logger.log_user_action(request, 'save_progress', puzzle_id=data.get('puzzle_id'))

        # Only the words are trusted; everything derived from them is recomputed
        record = GameRecord.from_dict(data)
        puzzle = puzzle_provider.get_puzzle(record.puzzle_id)
        saved = record_store.save(rescore_record(record, puzzle))

        response_data = {
            'success': True,
            'record': saved.to_dict()
        }
        game_logger.log_server_response(request, 'save_progress', True, response_data)
        return jsonify(response_data)

    except RecordValidationError as e:
        game_logger.log_error(request, e, 'save_progress')
        error_response = {'success': False, 'error': str(e)}
        game_logger.log_server_response(request, 'save_progress', False, error_response)
        return jsonify(error_response), 400

    except LocalPersistenceError as e:
        game_logger.log_error(request, e, 'save_progress')
        error_response = {
            'success': False,
            'error': str(e),
            'warning': 'Progress could not be saved locally and may not survive a reload'
        }
        game_logger.log_server_response(request, 'save_progress', False, error_response)
        return jsonify(error_response), 500

    except Exception as e:
        game_logger.log_error(request, e, 'save_progress')
        error_response = {'success': False, 'error': str(e)}
        game_logger.log_server_response(request, 'save_progress', False, error_response)
        return jsonify(error_response), 400


@progress_bp.route('/history/<user_id>', methods=['GET'])
def get_history(user_id):
    """Most recently updated records first."""
    try:
        stats_service = get_stats_service()
        if not stats_service:
            return jsonify({
                'success': False,
                'error': 'Stats service unavailable'
            }), 500

        limit = request.args.get('limit', HISTORY_LIMIT, type=int)
        if limit <= 0:
            limit = HISTORY_LIMIT

        game_logger.log_user_action(request, 'get_history', limit=limit)

        records = stats_service.get_history(user_id, limit)
        response_data = {
            'success': True,
            'history': [record.to_dict() for record in records]
        }

        game_logger.log_server_response(request, 'get_history', True, response_data)
        return jsonify(response_data)

    except Exception as e:
        game_logger.log_error(request, e, 'get_history')
        error_response = {'success': False, 'error': str(e)}
        game_logger.log_server_response(request, 'get_history', False, error_response)
        return jsonify(error_response), 400
