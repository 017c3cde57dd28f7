import logging

from gradeboard import create_app, room, socketio

app = create_app()

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    app.logger.info('CLASSROOM SERVER RUNNING')
    app.logger.info(f"Host: http://localhost:{app.config['PORT']}")
    for addr in room.store.state.available_addresses:
        app.logger.info(f"[{addr.name}]: {addr.url}")
    # Werkzeug is fine for a single classroom on a LAN
    socketio.run(app, host=app.config['HOST'], port=app.config['PORT'],
                 debug=app.config['DEBUG'], allow_unsafe_werkzeug=True)
