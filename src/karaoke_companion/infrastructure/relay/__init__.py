"""Relay infrastructure: owner-side hosted-session API over HTTP."""

from karaoke_companion.infrastructure.relay.hosted_session_client import HttpHostedSessionApi

__all__ = ["HttpHostedSessionApi"]
