"""
This file contains custom, application-specific exceptions.
"""
from typing import Dict, List


class ExternalServiceError(Exception):
    """Raised when an outbound HTTP integration fails."""
    pass

class CloudflareD1Error(ExternalServiceError):
    """Raised when the Cloudflare D1 worker answers with an error."""
    pass

class QuranAPIError(ExternalServiceError):
    """Raised when the Quran.com API cannot be reached or answers with an error."""
    pass

class WizardValidationError(Exception):
    """
    Raised when a wizard step fails validation.
    Carries the failing step and a mapping of field name -> messages.
    """
    def __init__(self, step: int, errors: Dict[str, List[str]]):
        self.step = step
        self.errors = errors
        super().__init__(f"Step {step} failed validation: {', '.join(errors)}")
