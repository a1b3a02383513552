"""
cspguard - Content-Security-Policy header builder and middleware
"""

__version__ = "0.1.0"

from cspguard.config.directive_defaults import (
    DANGEROUSLY_DISABLE_DEFAULT_SRC,
    dangerously_disable_default_src,
    get_default_directives,
)
from cspguard.errors import (
    ContentSecurityPolicyError,
    DuplicateDirectiveError,
    InvalidDirectiveNameError,
    InvalidDirectiveValueError,
    InvalidDirectivesError,
    MissingDefaultSrcError,
    NoDirectivesError,
)
from cspguard.middleware.content_security_policy import (
    HEADER_NAME,
    REPORT_ONLY_HEADER_NAME,
    ContentSecurityPolicy,
    content_security_policy,
)
from cspguard.middleware.csp_builder import (
    NormalizedDirective,
    NormalizedPolicy,
    get_header_value,
    normalize_directives,
)
from cspguard.middleware.nonce import NonceInjector, nonce_source

__all__ = [
    'DANGEROUSLY_DISABLE_DEFAULT_SRC',
    'dangerously_disable_default_src',
    'get_default_directives',
    'ContentSecurityPolicyError',
    'DuplicateDirectiveError',
    'InvalidDirectiveNameError',
    'InvalidDirectiveValueError',
    'InvalidDirectivesError',
    'MissingDefaultSrcError',
    'NoDirectivesError',
    'HEADER_NAME',
    'REPORT_ONLY_HEADER_NAME',
    'ContentSecurityPolicy',
    'content_security_policy',
    'NormalizedDirective',
    'NormalizedPolicy',
    'get_header_value',
    'normalize_directives',
    'NonceInjector',
    'nonce_source',
]
