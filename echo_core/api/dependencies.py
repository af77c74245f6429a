from starlette.requests import Request

from echo_core.engine import EchoCore


def get_core(request: Request) -> EchoCore:
    return request.app.state.echo_core
