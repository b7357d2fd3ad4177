"""
Game Controller

Handles all game-session HTTP endpoints and the health check.
"""

from dataclasses import asdict

from flask import Blueprint, request, jsonify

from ..exceptions import PuzzleNotFoundError
from ..services.game_service import get_game_service
from ..services.record_store import get_record_store
from ..utils.game_logger import game_logger

game_bp = Blueprint('game', __name__)

SAVE_WARNING = 'Progress could not be saved locally and may not survive a reload'


def _service_unavailable():
    return jsonify({
        'success': False,
        'error': 'Game service unavailable'
    }), 500


def _session_not_found(session_id):
    error_response = {
        'success': False,
        'error': 'Game session not found'
    }
    game_logger.log_server_response(request, 'get_session', False, error_response, session_id)
    return jsonify(error_response), 404


def _state_response(session, **extra):
    """Common success body carrying the session snapshot."""
    response_data = {
        'success': True,
        'session_id': session.session_id,
        'state': asdict(session.snapshot()),
        **extra
    }
    if session.save_error:
        response_data['warning'] = SAVE_WARNING
    return response_data


@game_bp.route('/game/new', methods=['POST'])
def new_game():
    """Start a session on today's puzzle, or on a given puzzle id."""
    try:
        game_service = get_game_service()
        if not game_service:
            return _service_unavailable()

        data = request.get_json(silent=True) or {}
        user_id = data.get('user_id')
        puzzle_id = data.get('puzzle_id')

        if not isinstance(user_id, str) or not user_id.strip():
            return jsonify({
                'success': False,
                'error': 'user_id is required'
            }), 400

        game_logger.log_user_action(request, 'new_game', puzzle_id=puzzle_id)

        session = game_service.start_session(user_id, puzzle_id)
        response_data = _state_response(session)

        game_logger.log_server_response(
            request, 'new_game', True, response_data, session.session_id,
            puzzle_id=session.puzzle.puzzle_id
        )
        return jsonify(response_data)

    except PuzzleNotFoundError as e:
        game_logger.log_error(request, e, 'new_game')
        error_response = {'success': False, 'error': str(e)}
        game_logger.log_server_response(request, 'new_game', False, error_response)
        return jsonify(error_response), 404

    except Exception as e:
        game_logger.log_error(request, e, 'new_game')

        error_response = {
            'success': False,
            'error': str(e)
        }

        game_logger.log_server_response(request, 'new_game', False, error_response)
        return jsonify(error_response), 400


@game_bp.route('/game/<session_id>/state', methods=['GET'])
def get_state(session_id):
    """Get current session state."""
    try:
        game_service = get_game_service()
        if not game_service:
            return _service_unavailable()

        game_logger.log_user_action(request, 'get_state', session_id)

        session = game_service.get_session(session_id)
        if session is None:
            return _session_not_found(session_id)

        response_data = _state_response(session)
        game_logger.log_server_response(request, 'get_state', True, response_data, session_id)
        return jsonify(response_data)

    except Exception as e:
        game_logger.log_error(request, e, 'get_state', session_id)
        error_response = {'success': False, 'error': str(e)}
        game_logger.log_server_response(request, 'get_state', False, error_response, session_id)
        return jsonify(error_response), 400


@game_bp.route('/game/<session_id>/letter', methods=['POST'])
def append_letter(session_id):
    """Type one letter into the session buffer."""
    try:
        game_service = get_game_service()
        if not game_service:
            return _service_unavailable()

        data = request.get_json(silent=True) or {}
        letter = data.get('letter', '')

        game_logger.log_user_action(request, 'append_letter', session_id, letter=letter)

        try:
            appended, session = game_service.append_letter(session_id, letter)
        except KeyError:
            return _session_not_found(session_id)

        response_data = _state_response(session, appended=appended)
        game_logger.log_server_response(request, 'append_letter', True, response_data, session_id)
        return jsonify(response_data)

    except Exception as e:
        game_logger.log_error(request, e, 'append_letter', session_id)
        error_response = {'success': False, 'error': str(e)}
        game_logger.log_server_response(request, 'append_letter', False, error_response, session_id)
        return jsonify(error_response), 400


def _buffer_action(session_id, action):
    """Shared body of the delete, clear and shuffle endpoints."""
    try:
        game_service = get_game_service()
        if not game_service:
            return _service_unavailable()

        game_logger.log_user_action(request, action, session_id)

        try:
            session = getattr(game_service, action)(session_id)
        except KeyError:
            return _session_not_found(session_id)

        response_data = _state_response(session)
        game_logger.log_server_response(request, action, True, response_data, session_id)
        return jsonify(response_data)

    except Exception as e:
        game_logger.log_error(request, e, action, session_id)
        error_response = {'success': False, 'error': str(e)}
        game_logger.log_server_response(request, action, False, error_response, session_id)
        return jsonify(error_response), 400


@game_bp.route('/game/<session_id>/delete', methods=['POST'])
def delete_last(session_id):
    """Remove the last typed letter."""
    return _buffer_action(session_id, 'delete_last')


@game_bp.route('/game/<session_id>/clear', methods=['POST'])
def clear(session_id):
    """Empty the session buffer."""
    return _buffer_action(session_id, 'clear')


@game_bp.route('/game/<session_id>/shuffle', methods=['POST'])
def shuffle(session_id):
    """Reorder the outer letters."""
    return _buffer_action(session_id, 'shuffle')


@game_bp.route('/game/<session_id>/submit', methods=['POST'])
def submit_word(session_id):
    """Submit the buffer, or a whole word passed in the body."""
    try:
        game_service = get_game_service()
        if not game_service:
            return _service_unavailable()

        data = request.get_json(silent=True) or {}
        word = data.get('word')

        game_logger.log_user_action(request, 'submit_word', session_id, word=word)

        try:
            verdict, session = game_service.submit_word(session_id, word)
        except KeyError:
            return _session_not_found(session_id)

        response_data = _state_response(
            session, result=verdict.to_dict() if verdict is not None else None
        )

        game_logger.log_server_response(
            request, 'submit_word', True, response_data, session_id,
            accepted=verdict.accepted if verdict is not None else None
        )
        return jsonify(response_data)

    except Exception as e:
        game_logger.log_error(request, e, 'submit_word', session_id)
        error_response = {'success': False, 'error': str(e)}
        game_logger.log_server_response(request, 'submit_word', False, error_response, session_id)
        return jsonify(error_response), 400


@game_bp.route('/game/<session_id>/new_puzzle', methods=['POST'])
def new_puzzle(session_id):
    """Move the session onto a fresh random puzzle."""
    try:
        game_service = get_game_service()
        if not game_service:
            return _service_unavailable()

        game_logger.log_user_action(request, 'new_puzzle', session_id)

        try:
            session = game_service.new_puzzle(session_id)
        except KeyError:
            return _session_not_found(session_id)

        response_data = _state_response(session)
        game_logger.log_server_response(
            request, 'new_puzzle', True, response_data, session_id,
            puzzle_id=session.puzzle.puzzle_id
        )
        return jsonify(response_data)

    except Exception as e:
        game_logger.log_error(request, e, 'new_puzzle', session_id)
        error_response = {'success': False, 'error': str(e)}
        game_logger.log_server_response(request, 'new_puzzle', False, error_response, session_id)
        return jsonify(error_response), 400


@game_bp.route('/game/<session_id>', methods=['DELETE'])
def end_session(session_id):
    """Forget a live session. Saved progress is kept."""
    try:
        game_service = get_game_service()
        if not game_service:
            return _service_unavailable()

        game_logger.log_user_action(request, 'end_session', session_id)

        if not game_service.end_session(session_id):
            return _session_not_found(session_id)

        response_data = {
            'success': True,
            'message': 'Session ended'
        }
        game_logger.log_server_response(request, 'end_session', True, response_data, session_id)
        return jsonify(response_data)

    except Exception as e:
        game_logger.log_error(request, e, 'end_session', session_id)
        error_response = {'success': False, 'error': str(e)}
        game_logger.log_server_response(request, 'end_session', False, error_response, session_id)
        return jsonify(error_response), 400


@game_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    game_service = get_game_service()
    record_store = get_record_store()
    return jsonify({
        'status': 'healthy',
        'service': 'spellorfail-server',
        'game_service_available': game_service is not None,
        'active_sessions': len(game_service.sessions) if game_service else 0,
        'remote_store_available': bool(record_store and record_store.remote_available),
        'logging': game_logger.get_log_stats()
    })
