"""Declarative table of Loopio API endpoints.

Each ``Endpoint`` describes one REST operation: the HTTP method, a path
template whose ``{placeholders}`` are filled from the call arguments, the
query parameters it accepts, and an optional content-type override. The API
client renders and executes any of them through one generic method.
"""
from dataclasses import dataclass
from typing import Optional

from .config import JSON_PATCH_CONTENT_TYPE


@dataclass(frozen=True)
class QueryParam:
    """A query string parameter.

    ``name`` is the wire name; ``argument`` is the call argument it is read
    from when the two differ (``inline[]`` is read from ``inline``).
    """
    name: str
    argument: Optional[str] = None

    @property
    def source(self) -> str:
        return self.argument or self.name


@dataclass(frozen=True)
class Endpoint:
    """One Loopio API operation."""
    method: str
    path: str
    query: tuple[QueryParam, ...] = ()
    content_type: Optional[str] = None


PAGE = QueryParam("page")
PAGE_SIZE = QueryParam("pageSize")
INLINE = QueryParam("inline[]", argument="inline")
FIELDS = QueryParam("fields")


# ==============================================================================
# Customers
# ==============================================================================

GET_CUSTOMER = Endpoint("GET", "/customers/{customerId}")
GET_CUSTOMER_ACTIVE_LANGUAGES = Endpoint("GET", "/customers/{customerId}/activeLanguages")

# ==============================================================================
# Library Entries
# ==============================================================================

LIST_LIBRARY_ENTRIES = Endpoint("GET", "/libraryEntries", query=(PAGE, PAGE_SIZE, QueryParam("filter")))
GET_LIBRARY_ENTRY = Endpoint("GET", "/libraryEntries/{libraryEntryId}", query=(INLINE,))
CREATE_LIBRARY_ENTRY = Endpoint("POST", "/libraryEntries")
UPDATE_LIBRARY_ENTRY = Endpoint(
    "PATCH", "/libraryEntries/{libraryEntryId}", content_type=JSON_PATCH_CONTENT_TYPE
)
DELETE_LIBRARY_ENTRY = Endpoint("DELETE", "/libraryEntries/{libraryEntryId}")
GET_LIBRARY_ENTRY_ATTACHMENTS = Endpoint("GET", "/libraryEntries/{libraryEntryId}/attachments")
BULK_CREATE_LIBRARY_ENTRIES = Endpoint("POST", "/libraryEntries/bulk")
LIST_LIBRARY_ENTRY_HISTORIES = Endpoint(
    "GET", "/libraryEntryHistories/{libraryEntryId}", query=(PAGE, PAGE_SIZE)
)
GET_LIBRARY_ENTRY_HISTORY = Endpoint("GET", "/libraryEntryHistories/{libraryEntryId}/{historyId}")

# ==============================================================================
# Stacks and Files
# ==============================================================================

LIST_STACKS = Endpoint("GET", "/stacks", query=(FIELDS,))
SHOW_FILE = Endpoint("GET", "/files/{fileId}")
DELETE_FILE = Endpoint("DELETE", "/files/{fileId}")

# ==============================================================================
# Projects
# ==============================================================================

LIST_PROJECTS = Endpoint(
    "GET", "/projects", query=(PAGE, PAGE_SIZE, QueryParam("rfxTypes"), QueryParam("owners"))
)
GET_PROJECT = Endpoint("GET", "/projects/{projectId}", query=(FIELDS,))
CREATE_PROJECT = Endpoint("POST", "/projects")
UPDATE_PROJECT = Endpoint("PUT", "/projects/{projectId}")
DELETE_PROJECT = Endpoint("DELETE", "/projects/{projectId}")
GET_PROJECT_SUMMARY = Endpoint("GET", "/projects/{projectId}/summary")
LIST_PROJECT_SUMMARIES = Endpoint("GET", "/projects/summary", query=(QueryParam("lastUpdatedDateGt"),))

# Compliance sets (answer sets)
LIST_PROJECT_COMPLIANCE_SETS = Endpoint("GET", "/projects/{projectId}/complianceSets")
GET_PROJECT_COMPLIANCE_SET = Endpoint("GET", "/projects/{projectId}/complianceSets/{complianceSetId}")
CREATE_PROJECT_COMPLIANCE_SET = Endpoint("POST", "/projects/{projectId}/complianceSets")
UPDATE_PROJECT_COMPLIANCE_SET = Endpoint("PUT", "/projects/{projectId}/complianceSets/{complianceSetId}")
DELETE_PROJECT_COMPLIANCE_SET = Endpoint(
    "DELETE", "/projects/{projectId}/complianceSets/{complianceSetId}"
)

# Participants and source documents
GET_PROJECT_PARTICIPANTS = Endpoint("GET", "/projects/{projectId}/participants")
UPDATE_PROJECT_PARTICIPANTS = Endpoint("PUT", "/projects/{projectId}/participants")
LIST_PROJECT_SOURCE_DOCUMENTS = Endpoint("GET", "/projects/{projectId}/sourceDocuments")

# ==============================================================================
# Custom Project Fields
# ==============================================================================

GET_PROJECT_CUSTOM_FIELD_VALUES = Endpoint("GET", "/projects/{projectId}/customProjectFields")
SET_PROJECT_CUSTOM_FIELD_VALUES = Endpoint("PUT", "/projects/{projectId}/customProjectFields")
LIST_CUSTOM_PROJECT_FIELDS = Endpoint("GET", "/customProjectFields", query=(QueryParam("source"),))
GET_CUSTOM_PROJECT_FIELD = Endpoint("GET", "/customProjectFields/{id}")
CREATE_CUSTOM_PROJECT_FIELD = Endpoint("POST", "/customProjectFields")
UPDATE_CUSTOM_PROJECT_FIELD = Endpoint(
    "PATCH", "/customProjectFields/{id}", content_type=JSON_PATCH_CONTENT_TYPE
)
DELETE_CUSTOM_PROJECT_FIELD = Endpoint("DELETE", "/customProjectFields/{id}")

# ==============================================================================
# Project Templates
# ==============================================================================

LIST_PROJECT_TEMPLATES = Endpoint("GET", "/projectTemplates", query=(PAGE, PAGE_SIZE))
CREATE_PROJECT_FROM_TEMPLATE = Endpoint("POST", "/projectTemplates/{projectTemplateId}/projects")

# ==============================================================================
# Project Entries, Sections and SubSections
# ==============================================================================

LIST_PROJECT_ENTRIES = Endpoint(
    "GET",
    "/projectEntries",
    query=(
        QueryParam("projectId"),
        QueryParam("sectionId"),
        QueryParam("subSectionId"),
        INLINE,
        PAGE,
        PAGE_SIZE,
    ),
)
GET_PROJECT_ENTRY = Endpoint("GET", "/projectEntries/{projectEntryId}", query=(INLINE,))
CREATE_PROJECT_ENTRY = Endpoint("POST", "/projectEntries")
UPDATE_PROJECT_ENTRY = Endpoint("PUT", "/projectEntries/{projectEntryId}")
DELETE_PROJECT_ENTRY = Endpoint("DELETE", "/projectEntries/{projectEntryId}")

LIST_SECTIONS = Endpoint("GET", "/sections", query=(QueryParam("projectId"), PAGE, PAGE_SIZE))
GET_SECTION = Endpoint("GET", "/sections/{sectionId}")
CREATE_SECTION = Endpoint("POST", "/sections")
UPDATE_SECTION = Endpoint("PUT", "/sections/{sectionId}")
DELETE_SECTION = Endpoint("DELETE", "/sections/{sectionId}")

LIST_SUB_SECTIONS = Endpoint(
    "GET", "/subSections", query=(QueryParam("projectId"), QueryParam("sectionId"), PAGE, PAGE_SIZE)
)
GET_SUB_SECTION = Endpoint("GET", "/subSections/{subSectionId}")
CREATE_SUB_SECTION = Endpoint("POST", "/subSections")
UPDATE_SUB_SECTION = Endpoint("PUT", "/subSections/{subSectionId}")
DELETE_SUB_SECTION = Endpoint("DELETE", "/subSections/{subSectionId}")
