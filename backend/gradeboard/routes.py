from datetime import date

from flask import Blueprint, Response, current_app, jsonify
from gradeboard import room
from gradeboard.services.export import export_csv

main = Blueprint('main', __name__)

@main.route('/')
def index():
    state = room.store.snapshot()
    return jsonify({'message': 'Classroom grading server', 'session_id': state['sessionId']})

@main.route('/api/state')
def get_state():
    return jsonify(room.store.snapshot())

@main.route('/api/addresses')
def get_addresses():
    return jsonify(room.store.snapshot()['availableIps'])

@main.route('/export')
def export_results():
    """Download the aggregated results of the current session as CSV."""
    categories, votes = room.store.categories_and_votes()
    body = export_csv(categories, votes)
    prefix = current_app.config.get('EXPORT_FILENAME_PREFIX', 'grading_results')
    filename = f'{prefix}_{date.today().isoformat()}.csv'
    current_app.logger.info(f"[export] votes={len(votes)} file={filename}")
    return Response(
        body,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={filename}'},
    )
