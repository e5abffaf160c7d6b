"""Resume service: photo, main document and additional files."""

from tenantfiles.models.resume import Resume, ResumeLinkedFile
from tenantfiles.services.file_service import FileTenantService
from tenantfiles.services.image_service import ImageTenantService
from tenantfiles.services.multi_file_service import MultiFileTenantService


class ResumeService(FileTenantService, ImageTenantService, MultiFileTenantService):
    model = Resume
    linked_file_model = ResumeLinkedFile
