"""Exception taxonomy for the alarm tagging pipeline."""


class TaggerError(Exception):
    """Base class for every failure the tagging pipeline reports to callers"""
    pass


class EventValidationError(TaggerError):
    """Raised when the inbound alarm notification cannot be used"""
    pass


class MalformedPayloadError(EventValidationError):
    """Raised when the payload is not a JSON alarm notification"""
    pass


class IncompleteEventError(EventValidationError):
    """Raised when required notification fields are missing or empty"""
    pass


class ConfigLoadError(TaggerError):
    """Raised when the vcconfig secret cannot be read or parsed"""
    pass


class ConfigValidationError(TaggerError):
    """Raised when the vcconfig secret lacks required connection fields"""
    pass


class VCenterConnectionError(TaggerError):
    """Raised when either vSphere login (SOAP or REST) fails"""
    pass


class VCenterLogoutError(TaggerError):
    """Raised when logging out of one or both vSphere sessions fails"""
    pass


class HardwareFetchError(TaggerError):
    """Raised when the VM property retrieval fails"""
    pass


class ConfigUnavailableError(HardwareFetchError):
    """Raised when the VM record carries no hardware configuration"""
    pass


class TaggingAPIError(TaggerError):
    """Raised by the REST tagging client on transport or HTTP errors"""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TagResolutionError(TaggerError):
    """Raised when the tag list for a category cannot be retrieved"""
    pass


class TagApplicationError(TaggerError):
    """Raised when attaching a tag to the VM fails"""
    pass


class TierPolicyError(TaggerError):
    """Raised when no tier can be computed from the VM's hardware"""
    pass
