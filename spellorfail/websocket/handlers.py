"""
WebSocket Event Handlers

Lets a client subscribe to its own statistics and receive a push
whenever a save has reached the remote store.
"""

from flask import request
from flask_socketio import emit, join_room, leave_room

from ..exceptions import PersistenceError
from ..utils.game_logger import game_logger

# Simple tracking of connected users
connected_users = {}  # socket_id -> user_id


def user_room(user_id):
    return f"user:{user_id}"


def register_websocket_handlers(socketio):
    """Register all WebSocket event handlers."""

    @socketio.on('connect')
    def handle_connect():
        """Handle WebSocket connection."""
        pass

    @socketio.on('disconnect')
    def handle_disconnect(*args):
        """Handle WebSocket disconnection."""
        user_id = connected_users.pop(request.sid, None)
        if user_id:
            game_logger.logger.debug(f"Socket for user '{user_id}' disconnected")

    @socketio.on('join_user')
    def handle_join_user(data):
        """Subscribe this socket to one user's updates."""
        user_id = data.get('user_id') if isinstance(data, dict) else None
        if not isinstance(user_id, str) or not user_id.strip():
            emit('error', {'error': 'user_id is required'})
            return

        join_room(user_room(user_id))
        connected_users[request.sid] = user_id
        emit('joined', {'user_id': user_id, 'room': user_room(user_id)})

    @socketio.on('leave_user')
    def handle_leave_user(data):
        """Stop receiving a user's updates."""
        user_id = connected_users.pop(request.sid, None)
        if isinstance(data, dict) and data.get('user_id'):
            user_id = data['user_id']
        if user_id:
            leave_room(user_room(user_id))
        emit('left', {'user_id': user_id})


def push_stats_update(socketio, user_id, stats):
    """Send fresh stats to every socket subscribed to the user."""
    socketio.emit('stats_update', {
        'user_id': user_id,
        'stats': stats.to_dict()
    }, room=user_room(user_id))


def register_stats_push(socketio, record_store, stats_service):
    """Push reconciled stats after each successful remote save."""

    def on_remote_saved(record):
        try:
            stats = stats_service.get_stats(record.user_id)
        except PersistenceError as e:
            game_logger.log_persistence_event(
                'stats_push', record.user_id, record.puzzle_id, success=False, error=str(e)
            )
            return
        push_stats_update(socketio, record.user_id, stats)

    record_store.add_remote_listener(on_remote_saved, name='stats_push')
