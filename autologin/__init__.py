"""Unattended identity-provider login with MFA and human-in-the-loop bot challenges."""

__version__ = "0.1.0"
