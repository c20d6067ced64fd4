from urban_auto.server.api import create_hosted_server, create_in_memory_server, create_server
from urban_auto.server.notifications import BroadcastHandler
from urban_auto.server.signup import LocalSignupEndpoint, SignupHandler

__all__ = [
    "SignupHandler",
    "LocalSignupEndpoint",
    "BroadcastHandler",
    "create_server",
    "create_in_memory_server",
    "create_hosted_server",
]
