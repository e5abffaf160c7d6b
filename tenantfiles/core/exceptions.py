"""Exception types raised by the tenant services and storage adapters.

Service exceptions are ``HTTPException`` subclasses so they surface with the
right status code whether or not the application's error handlers are
installed. Storage adapter exceptions are plain errors; they wrap whatever
the vendor SDK raised.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status


class TenantFilesError(HTTPException):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "internal_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(status_code=self.status_code, detail=message)
        self.message = message
        self.details = details


class BadArgumentError(TenantFilesError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "bad_argument"


class NullIdentifierError(TenantFilesError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "null_identifier"


class EmptyListError(TenantFilesError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "empty_list"


class EmptyCriteriaFilterError(TenantFilesError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "empty_criteria_filter"


class WrongCriteriaFilterError(TenantFilesError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "wrong_criteria_filter"


class EmptyFileError(TenantFilesError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "empty_file"


class EmptyFileListError(TenantFilesError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "empty_file_list"


class EmptyPathError(TenantFilesError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "empty_path"


class FileTooLargeError(TenantFilesError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    error = "file_too_large"


class MissingTenantError(TenantFilesError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "missing_tenant"


class InvalidTenantError(TenantFilesError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "invalid_tenant"


class TenantNotAllowedError(TenantFilesError):
    status_code = status.HTTP_403_FORBIDDEN
    error = "tenant_not_allowed"


class ObjectNotFoundError(TenantFilesError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "object_not_found"


class ResourceNotFoundError(TenantFilesError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "resource_not_found"


class FileNotFoundInStorageError(TenantFilesError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "file_not_found"


class CreateConstraintsViolationError(TenantFilesError):
    status_code = status.HTTP_409_CONFLICT
    error = "create_constraint_violation"


class UpdateConstraintsViolationError(TenantFilesError):
    status_code = status.HTTP_409_CONFLICT
    error = "update_constraint_violation"


class ServiceNotDefinedError(TenantFilesError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "service_not_defined"


class RemoteCallFailedError(TenantFilesError):
    status_code = status.HTTP_502_BAD_GATEWAY
    error = "remote_call_failed"


class ObjectStorageError(Exception):
    """Failure of a call to an object storage backend."""

    backend = "object-storage"

    def __init__(self, message: str):
        super().__init__(f"{self.backend}: {message}")
        self.message = message


class GarageObjectError(ObjectStorageError):
    backend = "garage"


class OxiCloudObjectError(ObjectStorageError):
    backend = "oxicloud"


class MinIOObjectError(ObjectStorageError):
    backend = "minio"


class LakeFSObjectError(ObjectStorageError):
    backend = "lakefs"
