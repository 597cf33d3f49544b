"""Cloakworks services package.

Three WSGI applications share this package:
    from cloakworks.gateway_app import create_app   # API gateway (token relay)
    from cloakworks.product_app import create_app   # /products
    from cloakworks.user_app import create_app      # /users

Token verification lives in cloakworks.core.token_trust and has no Flask dependency.
"""
