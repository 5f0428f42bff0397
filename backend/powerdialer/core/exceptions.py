"""
Dialer Exceptions
Error kinds raised by the dialer services and lead stores
"""


class DialerError(Exception):
    """Base class for dialer errors"""


class LeadNotFoundError(DialerError):
    """Lead id does not resolve to a stored lead"""

    def __init__(self, lead_id: str):
        self.lead_id = lead_id
        super().__init__(f"Lead not found: {lead_id}")


class InvalidArgumentError(DialerError):
    """Caller supplied an unrecognized or malformed value"""


class ConflictError(DialerError):
    """Write lost a race or collided with a unique key"""


class UpstreamUnavailableError(DialerError):
    """Store or lead source could not be reached"""
