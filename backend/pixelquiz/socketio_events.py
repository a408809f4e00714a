from flask import current_app, request
from pixelquiz import socketio


def _hub():
    return current_app.extensions['pixelquiz']['hub']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect(auth=None):
    sid = _get_sid()
    namespace = request.namespace  # type: ignore

    def send(data: str) -> None:
        # socketio.send works outside the request context, e.g. from the round loop task
        socketio.send(data, to=sid, namespace=namespace)

    _hub().open(sid, send)


def handle_disconnect(reason=None):
    _hub().close(_get_sid())


def handle_message(data):
    _hub().message(_get_sid(), data)


def register_socketio_handlers(namespace: str = '/ws', testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Frames arrive as plain ``message`` events (``json`` when the client
    uses ``send(obj, json=True)``). When testing is True, also mirror the
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [namespace]
    if testing and namespace != '/':
        namespaces.append('/')
    for ns in namespaces:
        socketio.on_event('connect', handle_connect, namespace=ns)
        socketio.on_event('disconnect', handle_disconnect, namespace=ns)
        socketio.on_event('message', handle_message, namespace=ns)
        socketio.on_event('json', handle_message, namespace=ns)
