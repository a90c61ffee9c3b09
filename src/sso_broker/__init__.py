"""sso-broker: single sign-on broker for independent services."""

__version__ = "0.1.0"
