"""HTTP client pieces: raw messages, multipart bodies and call builders.

Security notes:
- Treat server responses as untrusted input.
- Avoid printing or logging raw file bytes.
"""

from .call import RestProxy, RestProxyCall, new_rest_call
from .http import HttpResponse, HttpSession, Message, TransportStatus
from .multipart import FormPart, Multipart, form_request_from_multipart

__all__ = [
    "RestProxy",
    "RestProxyCall",
    "new_rest_call",
    "HttpResponse",
    "HttpSession",
    "Message",
    "TransportStatus",
    "FormPart",
    "Multipart",
    "form_request_from_multipart",
]
