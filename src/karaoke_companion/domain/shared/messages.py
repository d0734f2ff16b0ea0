"""Centralized message constants for error messages, log templates, and user feedback."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Time/Date Validation Errors
    TIMEZONE_REQUIRED_UTC_DATETIME = "UtcDateTime requires a timezone-aware datetime"

    # Database Validation Errors
    INVALID_DATABASE_URL = "Database URL must start with sqlite://"
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"

    # Relay Client Errors
    EMPTY_ACCESS_TOKEN = "Access token is required"
    EMPTY_HOSTED_SESSION_ID = "Hosted session id is required"
    RELAY_REQUEST_FAILED = "Relay request failed: {detail}"
    RELAY_HTTP_ERROR = "Relay returned HTTP {status}: {detail}"
    RELAY_INVALID_RESPONSE = "Relay returned an invalid response: {detail}"

    # Auth Errors
    EMPTY_REFRESH_TOKEN = "Refresh token is required"
    TOKEN_REFRESH_FAILED = "Token refresh failed: {detail}"

    # Session Errors
    SINGER_NOT_IN_SESSION = "Singer {singer_id} is not part of session {session_id}"


class UserMessages:
    """User-facing notification text."""

    HOSTING_RECONNECTED = "Reconnected to hosted session"
    HOSTING_END_FAILED = "Could not end session on server. It may expire automatically."
    HOSTING_ENDED_OR_EXPIRED = "Hosted session has ended or expired"
    NEW_SONG_REQUESTS = "{count} new song request{suffix}"
    SESSION_LOAD_FAILED = "Failed to load session. Please try restarting the app."
    SINGERS_LOAD_FAILED = "Could not load singers. They may appear after a refresh."


class LogTemplates:
    """Log message templates for structured logging.

    Use these with logger.info(), logger.error(), etc. and pass values as parameters
    for proper log formatting and structured logging support.
    """

    # Database Lifecycle
    DATABASE_INITIALIZED = "Database initialized at %s"
    DATABASE_CLOSED = "Database manager closed"
    TABLE_MIGRATED = "Migrated table %s: added column %s"

    # Queue Navigation
    QUEUE_ENQUEUED = "Enqueued '%s' (%s) at %s"
    QUEUE_REMOVED = "Removed %s from queue"
    QUEUE_REORDERED = "Moved %s to position %s"
    QUEUE_CLEARED = "Cleared %s queued entries"
    HISTORY_CLEARED = "Cleared %s history entries"
    HISTORY_REQUEUED = "Moved %s history entries back to the queue"
    HISTORY_REQUEUE_ROLLED_BACK = "Restored history after failed requeue: %s"
    QUEUE_PLAYING = "Now playing '%s' (%s)"
    QUEUE_NAVIGATION_EMPTY = "Nothing to play for %s"
    QUEUE_INDEX_EMPTY = "Nothing to play at %s index %s"
    QUEUE_STATE_LOADED = "Loaded queue state: %s queued, %s in history, cursor %s"
    QUEUE_CURSOR_CORRECTED = "Corrected out-of-range history cursor to %s"
    QUEUE_PERSIST_FAILED = "Failed to persist queue change (%s): %s"
    QUEUE_FLUSHED = "Flushed %s pending queue writes"

    # Fair Insertion
    FAIR_POSITION_COMPUTED = "Fair position for singer %s: %s"
    FAIR_POSITION_FAILED = "Fair position lookup failed for entry %s: %s"

    # Session Identity
    SESSION_LOADED = "Loaded session %s (%s)"
    SESSION_NONE_ACTIVE = "No active session"
    SESSION_LOAD_FAILED = "Failed to load session: %s"
    SESSION_STARTED = "Started session %s"
    SESSION_ENDED = "Ended session %s"
    SESSION_SWITCHED = "Switched to session %s"
    SESSION_RENAMED = "Renamed session %s to '%s'"
    SESSION_HOSTED_FIELDS_UPDATED = "Session %s hosted state: %s by %s (%s)"
    SESSION_HOSTED_STATUS_UPDATED = "Session %s hosted status -> %s"

    # Singers
    SINGER_CREATED = "Created singer %s (%s)"
    SINGER_DELETED = "Deleted singer %s"
    SINGERS_LOAD_FAILED = "Failed to load singers: %s"
    ACTIVE_SINGER_LOAD_FAILED = "Failed to load active singer: %s"
    SINGER_ADDED_TO_SESSION = "Added singer %s to session %s"
    SINGER_REMOVED_FROM_SESSION = "Removed singer %s from session %s"
    ACTIVE_SINGER_SET = "Active singer for session %s: %s"
    SINGER_ASSIGNED = "Assigned singer %s to entry %s"
    SINGER_UNASSIGNED = "Removed singer %s from entry %s"

    # Auth
    AUTH_TOKENS_REFRESHED = "Access token refreshed, expires at %s"
    AUTH_REFRESH_FAILED = "Token refresh failed: %s"
    AUTH_USER_WAIT_TIMEOUT = "Timed out after %.1fs waiting for the user profile"
    AUTH_EXPIRY_FALLBACK = "Refreshed tokens carry no expiry, assuming %ss"

    # Hosted-Session Lifecycle
    HOSTING_STARTED = "Hosting session %s as %s (code %s)"
    HOSTING_STOPPED = "Stopped hosting %s"
    HOSTING_STOP_SKIPPED = "No hosted session to stop"
    HOSTING_END_REMOTE_FAILED = "Failed to end hosted session %s on relay: %s"
    HOSTING_STATUS_PERSIST_FAILED = "Failed to persist ended status for session %s: %s"
    HOSTING_FAILED = "Hosting failed: %s"
    HOSTING_OWNERSHIP_RACE = "Ownership conflict on session %s, ending orphaned hosted session %s"
    HOSTING_ORPHAN_END_FAILED = "Failed to end orphaned hosted session %s: %s"
    HOSTING_STALE_RESULT = "Ignoring stale %s result for %s"
    HOSTED_BY_OTHER_USER = "Session %s is hosted by another user (%s)"

    # Restore
    RESTORE_SKIPPED = "Skipping hosted session restore: %s"
    RESTORE_SUCCEEDED = "Restored hosted session %s"
    RESTORE_REMOTE_ENDED = "Hosted session %s reported %s by relay, marking ended"
    RESTORE_DEFINITIVE_FAILURE = "Hosted session %s restore rejected (%s), clearing persisted id"
    RESTORE_TRANSIENT_FAILURE = "Hosted session %s restore failed (%s of %s), will retry: %s"
    RESTORE_FAILURE_LIMIT_REACHED = "Hosted session %s failed to restore %s times, marking ended"

    # Refresh
    REFRESH_SKIPPED = "Skipping hosted session refresh: %s"
    REFRESH_STATS = "Hosted session %s stats: %s pending, %s approved, %s guests"
    REFRESH_DEFINITIVE_FAILURE = "Hosted session %s ended or expired (%s)"
    REFRESH_TRANSIENT_FAILURE = "Hosted session %s refresh failed, will retry: %s"

    # Poller
    POLLER_STARTED = "Hosted session poll started (every %ss)"
    POLLER_CANCELLED = "Hosted session poll cancelled"
    POLLER_TICK_FAILED = "Hosted session poll tick failed: %s"

    # Relay Client
    RELAY_REQUEST = "%s %s"
    RELAY_CLIENT_CLOSED = "Relay HTTP client closed"

    # Application Lifecycle
    APP_STARTING = "Starting karaoke companion (%s)"
    APP_STOPPED = "Karaoke companion stopped"
    APP_KEYBOARD_INTERRUPT = "Interrupted, shutting down"
    APP_FATAL_ERROR = "Fatal error: %s"
    LOGGING_CONFIG_FALLBACK = "Could not load %s, falling back to basic config"
    SUBSCRIBER_STOP_FAILED = "Failed stopping %s: %r"
