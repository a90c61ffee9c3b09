"""Shared utilities for sso-broker."""
