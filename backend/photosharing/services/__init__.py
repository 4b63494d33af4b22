# Services package init
"""
PhotoSharing Backend — Services Layer
=======================================

What:  Request-level rules that sit between the routes and the repository.

Service Inventory:
    - sanitization:      category name normalization
    - PhotoValidation:   "does the caller own this photo" check
    - IapValidator:      store receipt parsing for gold purchases
"""

from photosharing.services.iap_validator import IapValidator, iap_validator
from photosharing.services.photo_validation import PhotoValidation
from photosharing.services.sanitization import sanitize_category_name

__all__ = ["IapValidator", "PhotoValidation", "iap_validator", "sanitize_category_name"]
