"""Built-in authentication plugins.

Each subpackage implements one ``auth_type`` as an
:class:`~restauth.auth.base.AuthPlugin` together with the
:class:`~restauth.auth.base.Authenticator` it builds. They are registered by
:func:`~restauth.auth.manager.create_default_manager`.
"""
