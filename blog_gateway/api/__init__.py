from blog_gateway.api.app import GatewayServer, create_app

__all__ = ["GatewayServer", "create_app"]
