"""restgraph: authorized calls and multipart uploads against graph-style web APIs."""

from restgraph.auth import AccessTokenAuthorizer, Authorizer, BearerTokenAuthorizer
from restgraph.client import Message, RestProxyCall, TransportStatus, new_rest_call
from restgraph.config import GraphConfig
from restgraph.files import FileMetadata, UploadCandidate
from restgraph.upload import UploadPipeline, UploadState, is_uploadable, upload_file

__all__ = [
    "AccessTokenAuthorizer",
    "Authorizer",
    "BearerTokenAuthorizer",
    "FileMetadata",
    "GraphConfig",
    "Message",
    "RestProxyCall",
    "TransportStatus",
    "UploadCandidate",
    "UploadPipeline",
    "UploadState",
    "is_uploadable",
    "new_rest_call",
    "upload_file",
]
