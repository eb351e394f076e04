"""
Flask web application exposing the bracket engine.

Authorization is handled in front of this service; every route here assumes
the caller is allowed to act on the event.
"""
import os
import logging
from filelock import Timeout
from flask import Flask, request, jsonify

from engine.errors import BracketError, ValidationError, NotFoundError, InvalidStateError, InvalidArgumentError
from engine.models import Player
from engine.scoring import DEFAULT_MAX_SCORE
from storage import BracketStore

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))

app.config['DATA_DIR'] = DATA_DIR
app.config['MAX_SCORE'] = int(os.environ.get('BRACKET_MAX_SCORE', DEFAULT_MAX_SCORE))
app.config['LOCK_TIMEOUT'] = float(os.environ.get('BRACKET_LOCK_TIMEOUT', 10))

ERROR_STATUS = {
    ValidationError: 400,
    InvalidArgumentError: 400,
    NotFoundError: 404,
    InvalidStateError: 409,
}


def get_store() -> BracketStore:
    """Store bound to the configured data directory."""
    return BracketStore(app.config['DATA_DIR'], lock_timeout=app.config['LOCK_TIMEOUT'])


def bracket_response(bracket):
    champion = bracket.champion
    return {
        'bracket': bracket.to_list(),
        'status': bracket.status.value,
        'champion': champion.to_dict() if champion else None,
    }


def json_body() -> dict:
    """JSON object sent with the request; an absent body reads as empty."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", field='body')
    return data


@app.errorhandler(BracketError)
def handle_bracket_error(e):
    status = ERROR_STATUS.get(type(e), 400)
    app.logger.warning(f'{request.method} {request.path} rejected: {e.message}')
    return jsonify(e.to_dict()), status


@app.errorhandler(Timeout)
def handle_lock_timeout(e):
    app.logger.error(f'Lock timeout on {request.path}: {e}')
    return jsonify({'error': 'BUSY', 'message': 'Event is busy, try again'}), 503


@app.route('/api/events/<event_id>/bracket', methods=['GET'])
def get_bracket(event_id):
    """Return the stored bracket of an event."""
    bracket = get_store().load_bracket(event_id)
    if bracket is None or bracket.is_empty():
        raise NotFoundError("Bracket for event", event_id)
    return jsonify(bracket_response(bracket))


@app.route('/api/events/<event_id>/bracket', methods=['POST'])
def create_bracket(event_id):
    """Generate the bracket of an event, or return the one already stored."""
    data = json_body()

    players = None
    if 'players' in data:
        if not isinstance(data['players'], list):
            raise ValidationError("players must be a list", field='players')
        players = [Player.from_dict(p) for p in data['players']]

    bracket = get_store().generate(event_id, players=players)

    if bracket.is_empty():
        round_name = bracket.rounds[0].name if bracket.rounds else ''
        app.logger.warning(f'Bracket for event {event_id} not generated: {round_name}')
        return jsonify({
            'error': 'VALIDATION_ERROR',
            'message': 'Need at least 2 participants to create a bracket',
            'bracket': bracket.to_list(),
        }), 400

    app.logger.info(f'Bracket ready for event {event_id}: {len(bracket.rounds)} rounds')
    return jsonify(bracket_response(bracket))


@app.route('/api/events/<event_id>/matches/<match_id>/result', methods=['POST'])
def declare_match_result(event_id, match_id):
    """Declare the winner of a match and advance the bracket."""
    data = json_body()
    winner_id = data.get('winnerId')
    if not winner_id:
        raise ValidationError("Winner ID is required", field='winnerId')

    bracket = get_store().declare_winner(event_id, match_id, str(winner_id))
    app.logger.info(f'Event {event_id}: match {match_id} won by {winner_id}')
    return jsonify({'success': True, **bracket_response(bracket)})


@app.route('/api/events/<event_id>/matches/<match_id>/score', methods=['POST'])
def submit_match_score(event_id, match_id):
    """Submit the scores of a match; the higher score wins."""
    data = json_body()
    scores = data.get('scores')
    if not isinstance(scores, list):
        raise ValidationError("Invalid score format", field='scores')

    converted = []
    for entry in scores:
        if not isinstance(entry, dict):
            raise ValidationError("Invalid score format", field='scores')
        converted.append({'participant_id': entry.get('participantId'), 'score': entry.get('score')})

    bracket = get_store().submit_score(event_id, match_id, converted, max_score=app.config['MAX_SCORE'])
    match = bracket.find_match(match_id)[1]
    app.logger.info(f'Event {event_id}: scores {match.scores} recorded for match {match_id}')
    return jsonify({
        'success': True,
        'matchCompleted': True,
        'winner': match.winner_id,
        **bracket_response(bracket),
    })


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    app.run(debug=True, port=5000)
