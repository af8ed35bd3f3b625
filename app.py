"""Flask application hosting werewolf sessions."""

# CRITICAL: gevent.monkey_patch() MUST be called before any other imports
from gevent import monkey
monkey.patch_all()

import sys

from flask import Flask, request, jsonify
from flask_socketio import SocketIO, emit, join_room
from gevent import GreenletExit
from gevent.hub import Hub

import config
from werewolf import GameListener, SessionRegistry
from werewolf.errors import GameError, ActionResult
from werewolf.error_logger import initialize_logging, log_exception

# =============================================================================
# CRASH LOGGING
# =============================================================================

def install_crash_logging():
    """Route uncaught errors from timer greenlets and the main thread to the werewolf log.

    Sessions log their own callback failures; this catches whatever escapes
    them, then defers to the previous handler so gevent still prints it.
    """
    previous_handle_error = Hub.handle_error
    previous_excepthook = sys.excepthook

    def handle_greenlet_error(hub, context, exc_type, value, tb):
        if not isinstance(value, GreenletExit):
            log_exception(value, f"Uncaught error in greenlet {context!r}")
        previous_handle_error(hub, context, exc_type, value, tb)

    def handle_main_error(exc_type, value, tb):
        log_exception(value, "Uncaught error in the host process")
        previous_excepthook(exc_type, value, tb)

    Hub.handle_error = handle_greenlet_error
    sys.excepthook = handle_main_error


install_crash_logging()


app = Flask(__name__)
socketio = SocketIO(app, cors_allowed_origins="*", async_mode='gevent')

initialize_logging(log_dir=config.LOG_DIR, log_level=config.LOG_LEVEL)

registry = SessionRegistry(rules=config.load_rules())


def player_room(channel_id, player_id):
    return f"{channel_id}:{player_id}"


class SocketIOListener(GameListener):
    """Forwards engine events to Socket.IO rooms.

    Public events go to the channel room, private ones to the player's own room.
    """

    def __init__(self, channel_id):
        self.channel_id = channel_id

    def _public(self, event, payload):
        socketio.emit(event, payload, room=self.channel_id)

    def _private(self, player, event, payload):
        if player.is_ai:
            return
        socketio.emit(event, payload, room=player_room(self.channel_id, player.player_id))

    def on_role_assigned(self, player, role, teammates, card):
        self._private(player, 'role_assigned', {'role': role.info(), 'teammates': teammates, 'card': card})

    def on_night_prompt_needed(self, player, role, prompt_context):
        self._private(player, 'night_prompt', {'role': role.role_id.value, **prompt_context})

    def on_night_phase_skipped(self, phase):
        self._public('night_phase_skipped', {'phase': phase.value})

    def on_day_report(self, deaths):
        self._public('day_report', {'deaths': deaths})

    def on_seer_result(self, seer, target, is_werewolf):
        self._private(seer, 'seer_result', {'target': target.to_dict(), 'is_werewolf': is_werewolf})

    def on_voting_opened(self, candidates):
        self._public('voting_opened', {'candidates': [p.to_dict() for p in candidates]})

    def on_voting_result(self, executed, vote_count, tie):
        self._public('voting_result', {
            'executed': executed.to_dict() if executed else None,
            'vote_count': vote_count,
            'tie': tie,
        })

    def on_hunter_retaliation_needed(self, hunter, candidates):
        self._private(hunter, 'hunter_prompt', {'candidates': [p.to_dict() for p in candidates]})

    def on_hunter_shot(self, hunter, target):
        self._public('hunter_shot', {'hunter': hunter.to_dict(), 'target': target.to_dict() if target else None})

    def on_werewolf_team_changed(self, player, teammates):
        self._private(player, 'werewolf_team_changed', {'teammates': teammates})

    def on_phase_changed(self, phase, day):
        self._public('phase_changed', {'phase': phase.value, 'day': day})

    def on_game_ended(self, winning_alignment, final_roster):
        self._public('game_ended', {
            'winner': winning_alignment.value if winning_alignment else None,
            'roster': final_roster,
        })


def respond(result: ActionResult):
    return jsonify(result.to_dict()), (200 if result.success else 400)


def get_session_or_404(channel_id):
    session = registry.get(channel_id)
    if session is None:
        return None, (jsonify({"error": "Game not found"}), 404)
    return session, None


@app.route("/games/<channel_id>", methods=["POST"])
def create_game(channel_id):
    """Open a lobby in a channel; the host joins automatically."""
    data = request.json or {}
    host_id = data.get("host_id")
    if not host_id:
        return jsonify({"error": "host_id is required"}), 400

    try:
        session = registry.create(
            channel_id, host_id, data.get("host_name"), listener=SocketIOListener(channel_id)
        )
    except GameError as e:
        return respond(ActionResult.failure(e))
    return jsonify({"session_id": session.session_id, "state": session.snapshot(host_id)})


@app.route("/games/<channel_id>/players", methods=["POST"])
def join_game(channel_id):
    session, error = get_session_or_404(channel_id)
    if error:
        return error
    data = request.json or {}
    return respond(session.add_player(data.get("player_id"), data.get("name")))


@app.route("/games/<channel_id>/players/<player_id>", methods=["DELETE"])
def leave_game(channel_id, player_id):
    session, error = get_session_or_404(channel_id)
    if error:
        return error
    return respond(session.remove_player(player_id))


@app.route("/games/<channel_id>/start", methods=["POST"])
def start_game(channel_id):
    session, error = get_session_or_404(channel_id)
    if error:
        return error
    data = request.json or {}
    return respond(session.start_game(data.get("ai_fill_count", 0), requester_id=data.get("requester_id")))


@app.route("/games/<channel_id>/night_action", methods=["POST"])
def night_action(channel_id):
    session, error = get_session_or_404(channel_id)
    if error:
        return error
    data = request.json or {}
    return respond(session.submit_night_action(data.get("player_id"), data.get("choice")))


@app.route("/games/<channel_id>/vote", methods=["POST"])
def vote(channel_id):
    session, error = get_session_or_404(channel_id)
    if error:
        return error
    data = request.json or {}
    return respond(session.submit_vote(data.get("voter_id"), data.get("choice")))


@app.route("/games/<channel_id>/hunter_shot", methods=["POST"])
def hunter_shot(channel_id):
    session, error = get_session_or_404(channel_id)
    if error:
        return error
    data = request.json or {}
    return respond(session.submit_hunter_shot(data.get("hunter_id"), data.get("choice")))


@app.route("/games/<channel_id>/cancel", methods=["POST"])
def cancel_game(channel_id):
    session, error = get_session_or_404(channel_id)
    if error:
        return error
    data = request.json or {}
    result = session.cancel_game(data.get("requester_id"))
    if result.success:
        registry.prune()
    return respond(result)


@app.route("/games/<channel_id>/state")
def get_game_state(channel_id):
    """Get current game state as JSON, as seen by the optional viewer."""
    session, error = get_session_or_404(channel_id)
    if error:
        return error
    return jsonify(session.snapshot(request.args.get("viewer")))


@socketio.on('join_game')
def handle_join_game(data):
    """Subscribe a client to the channel room and its private player room."""
    channel_id = data.get('channel_id')
    player_id = data.get('player_id')
    if channel_id in registry:
        join_room(channel_id)
        if player_id:
            join_room(player_room(channel_id, player_id))
        emit('joined_game', {'channel_id': channel_id})


if __name__ == "__main__":
    socketio.run(app, debug=True, port=config.PORT)
