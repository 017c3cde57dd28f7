from flask import current_app, request
from flask_socketio import emit
from gradeboard import room, socketio
from gradeboard.room import ERROR_EVENT, NAMESPACE, STATE_EVENT, Peer
from gradeboard.services.identity import normalize_address
from gradeboard.services.session import StatusUpdate
from gradeboard.services.voting import VoteRejected


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect():
    sid = _get_sid()
    address = normalize_address(request.remote_addr) or 'localhost'
    # Resolving may block on ping/arp; the peer cannot vote until it is registered below
    identity = room.resolver.resolve(address)
    current_app.logger.info(
        f"[connect] address={address} {identity.id_type.value}={identity.device_id} sid={sid}"
    )
    room.peers[sid] = Peer(device_id=identity.device_id, address=address)
    room.registry.register(identity.device_id, room.channel(sid))
    # Network may have changed since start-up
    room.refresh_addresses()
    emit(STATE_EVENT, room.store.snapshot())


def handle_disconnect():
    sid = _get_sid()
    peer = room.peers.pop(sid, None)
    if not peer:
        return
    room.registry.unregister(peer.device_id, sid)
    current_app.logger.info(f"[disconnect] device={peer.device_id} sid={sid}")


def handle_create_session(data=None):
    data = data if isinstance(data, dict) else {}
    try:
        room.store.create_session(data.get('name'), data.get('categories'))
    except ValueError as exc:
        current_app.logger.warning(f"[create-session] rejected: {exc}")
        emit(ERROR_EVENT, {'message': str(exc)})


def handle_select_ip(data=None):
    index = data.get('index') if isinstance(data, dict) else data
    room.store.select_display_address(index)


def handle_update_status(data=None):
    try:
        room.store.update_status(StatusUpdate.from_payload(data))
    except ValueError as exc:
        current_app.logger.warning(f"[update-status] rejected: {exc}")
        emit(ERROR_EVENT, {'message': str(exc)})


def handle_submit_vote(data=None):
    sid = _get_sid()
    peer = room.peers.get(sid)
    if not peer:
        emit(ERROR_EVENT, {'message': 'Connection is not registered.'})
        return
    try:
        votes = room.store.submit_vote(peer.device_id, sid, peer.address, data)
    except VoteRejected as exc:
        current_app.logger.info(f"[vote-rejected] device={peer.device_id} reason={exc}")
        emit(ERROR_EVENT, {'message': str(exc)})
        return
    current_app.logger.info(f"[vote] device={peer.device_id} records={len(votes)}")


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the room namespace."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('host-create-session', handle_create_session, namespace=NAMESPACE)
    socketio.on_event('host-select-ip', handle_select_ip, namespace=NAMESPACE)
    socketio.on_event('host-update-status', handle_update_status, namespace=NAMESPACE)
    socketio.on_event('student-submit-vote', handle_submit_vote, namespace=NAMESPACE)
