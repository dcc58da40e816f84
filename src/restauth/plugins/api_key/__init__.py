from restauth.plugins.api_key.plugin import APIKeyAuthenticator, APIKeyAuthPlugin

__all__ = ["APIKeyAuthPlugin", "APIKeyAuthenticator"]
