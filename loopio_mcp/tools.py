"""MCP Tools for Loopio.

This module declares the tools the agent can use against the Loopio API.
Each tool is one row in ``TOOLS``:
- an input model, validated by FastMCP before the tool runs
- the endpoint it calls through the generic API client
- how its result is rendered as text

``register_tools`` turns the table (plus the library entry resource, the
search prompt and the token status tool) into FastMCP registrations bound to
one API client.
"""
import json
from dataclasses import dataclass
from typing import Any, Optional
import logging

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from . import endpoints
from .endpoints import Endpoint
from .api_client import LoopioAPIClient
from .token_manager import TokenManager
from .models import (
    ToolInput,
    PageInput,
    CustomerIdInput,
    ListLibraryEntriesInput,
    LibraryEntryIdInput,
    GetLibraryEntryInput,
    CreateLibraryEntryInput,
    BulkCreateLibraryEntriesInput,
    UpdateLibraryEntryInput,
    LibraryEntryHistoryInput,
    LibraryEntryHistoryItemInput,
    ListStacksInput,
    FileIdInput,
    ListProjectsInput,
    ProjectIdInput,
    GetProjectInput,
    CreateProjectInput,
    UpdateProjectInput,
    ProjectSummaryListInput,
    ComplianceSetIdInput,
    CreateComplianceSetInput,
    UpdateComplianceSetInput,
    UpdateProjectParticipantsInput,
    SetCustomProjectFieldValuesInput,
    ListCustomProjectFieldsInput,
    CustomProjectFieldIdInput,
    CreateCustomProjectFieldInput,
    UpdateCustomProjectFieldInput,
    CreateProjectFromTemplateInput,
    ListProjectEntriesInput,
    ProjectEntryIdInput,
    GetProjectEntryInput,
    CreateProjectEntryInput,
    UpdateProjectEntryInput,
    ListProjectSectionsInput,
    SectionIdInput,
    CreateSectionInput,
    UpdateSectionInput,
    ListProjectSubSectionsInput,
    SubSectionIdInput,
    CreateSubSectionInput,
    UpdateSubSectionInput,
)

logger = logging.getLogger(__name__)

LIBRARY_ENTRY_RESOURCE_URI = "loopio://libraryEntry/{id}"


@dataclass(frozen=True)
class ToolSpec:
    """Declarative description of one MCP tool.

    ``message`` is a confirmation line formatted with the call arguments and,
    when the response is an object, its fields. With ``include_result`` the
    JSON response follows the message.
    """
    name: str
    title: str
    description: str
    input_model: type[ToolInput]
    endpoint: Endpoint
    message: Optional[str] = None
    include_result: bool = True

    @property
    def annotations(self) -> ToolAnnotations:
        method = self.endpoint.method
        return ToolAnnotations(
            title=self.title,
            readOnlyHint=method == "GET",
            destructiveHint=method == "DELETE",
            idempotentHint=method in ("GET", "PUT", "DELETE"),
            openWorldHint=True,
        )


TOOLS: tuple[ToolSpec, ...] = (
    # --- Customers ---
    ToolSpec(
        "getCustomer", "Get Customer",
        "Fetch the Loopio customer (account) record.",
        CustomerIdInput, endpoints.GET_CUSTOMER,
    ),
    ToolSpec(
        "getCustomerActiveLanguages", "Get Customer Active Languages",
        "List the language codes active for a customer.",
        CustomerIdInput, endpoints.GET_CUSTOMER_ACTIVE_LANGUAGES,
    ),
    # --- Library entries ---
    ToolSpec(
        "listLibraryEntries", "List Library Entries",
        "Search and list library entries (question/answer pairs) with optional filters. "
        "Use this as the first step to find reusable answers.",
        ListLibraryEntriesInput, endpoints.LIST_LIBRARY_ENTRIES,
    ),
    ToolSpec(
        "getLibraryEntry", "Get Library Entry",
        "Fetch a single library entry, optionally with merge variables substituted.",
        GetLibraryEntryInput, endpoints.GET_LIBRARY_ENTRY,
    ),
    ToolSpec(
        "createLibraryEntry", "Create Library Entry",
        "Create a library entry in a stack (and optional category/subcategory).",
        CreateLibraryEntryInput, endpoints.CREATE_LIBRARY_ENTRY,
        message="Successfully created library entry with ID: {id}",
    ),
    ToolSpec(
        "updateLibraryEntry", "Update Library Entry",
        "Update a library entry with a list of JSON Patch operations.",
        UpdateLibraryEntryInput, endpoints.UPDATE_LIBRARY_ENTRY,
        message="Successfully updated library entry {libraryEntryId}",
    ),
    ToolSpec(
        "deleteLibraryEntry", "Delete Library Entry",
        "Delete a library entry.",
        LibraryEntryIdInput, endpoints.DELETE_LIBRARY_ENTRY,
        message="Successfully deleted library entry {libraryEntryId}", include_result=False,
    ),
    ToolSpec(
        "getLibraryEntryAttachments", "Get Library Entry Attachments",
        "List the files attached to a library entry.",
        LibraryEntryIdInput, endpoints.GET_LIBRARY_ENTRY_ATTACHMENTS,
    ),
    ToolSpec(
        "getLibraryEntryHistory", "Get Library Entry History",
        "List the change history of a library entry.",
        LibraryEntryHistoryInput, endpoints.LIST_LIBRARY_ENTRY_HISTORIES,
    ),
    ToolSpec(
        "getLibraryEntryHistoryItem", "Get Library Entry History Item",
        "Fetch one item from a library entry's change history.",
        LibraryEntryHistoryItemInput, endpoints.GET_LIBRARY_ENTRY_HISTORY,
    ),
    ToolSpec(
        "bulkCreateLibraryEntries", "Bulk Create Library Entries",
        "Create many library entries in one asynchronous task.",
        BulkCreateLibraryEntriesInput, endpoints.BULK_CREATE_LIBRARY_ENTRIES,
        message="Bulk create task accepted. Task ID: {taskId}", include_result=False,
    ),
    # --- Stacks and files ---
    ToolSpec(
        "listStacks", "List Stacks",
        "List library stacks, with categories and subcategories when fields='@wide'.",
        ListStacksInput, endpoints.LIST_STACKS,
    ),
    ToolSpec(
        "showFile", "Show File",
        "Fetch file metadata including its download URL.",
        FileIdInput, endpoints.SHOW_FILE,
    ),
    ToolSpec(
        "deleteFile", "Delete File",
        "Delete a file.",
        FileIdInput, endpoints.DELETE_FILE,
        message="Successfully deleted file {fileId}", include_result=False,
    ),
    # --- Projects ---
    ToolSpec(
        "listProjects", "List Projects",
        "List projects, optionally filtered by type and owner.",
        ListProjectsInput, endpoints.LIST_PROJECTS,
    ),
    ToolSpec(
        "getProject", "Get Project",
        "Fetch a single project.",
        GetProjectInput, endpoints.GET_PROJECT,
    ),
    ToolSpec(
        "createProject", "Create Project",
        "Create a new project (RFP, RFI, DDQ, SQ, PP or OTHER).",
        CreateProjectInput, endpoints.CREATE_PROJECT,
        message="Successfully created project with ID: {id}",
    ),
    ToolSpec(
        "updateProject", "Update Project",
        "Change the status of a project.",
        UpdateProjectInput, endpoints.UPDATE_PROJECT,
        message="Successfully updated project {projectId}",
    ),
    ToolSpec(
        "deleteProject", "Delete Project",
        "Delete a project.",
        ProjectIdInput, endpoints.DELETE_PROJECT,
        message="Successfully deleted project {projectId}", include_result=False,
    ),
    ToolSpec(
        "getProjectSummary", "Get Project Summary",
        "Fetch progress statistics (question counts, workdays) for a project.",
        ProjectIdInput, endpoints.GET_PROJECT_SUMMARY,
    ),
    ToolSpec(
        "getProjectSummaryList", "Get Project Summary List",
        "List project summaries updated after a given date.",
        ProjectSummaryListInput, endpoints.LIST_PROJECT_SUMMARIES,
    ),
    # --- Compliance sets ---
    ToolSpec(
        "getProjectComplianceSets", "Get Project Compliance Sets",
        "List the compliance (answer) sets of a project.",
        ProjectIdInput, endpoints.LIST_PROJECT_COMPLIANCE_SETS,
    ),
    ToolSpec(
        "getProjectComplianceSet", "Get Project Compliance Set",
        "Fetch one compliance set of a project.",
        ComplianceSetIdInput, endpoints.GET_PROJECT_COMPLIANCE_SET,
    ),
    ToolSpec(
        "createComplianceSet", "Create Compliance Set",
        "Create a compliance set with its options in a project.",
        CreateComplianceSetInput, endpoints.CREATE_PROJECT_COMPLIANCE_SET,
        message="Successfully created compliance set",
    ),
    ToolSpec(
        "updateProjectComplianceSet", "Update Project Compliance Set",
        "Replace the label, short name and options of a compliance set.",
        UpdateComplianceSetInput, endpoints.UPDATE_PROJECT_COMPLIANCE_SET,
        message="Successfully updated compliance set",
    ),
    ToolSpec(
        "deleteProjectComplianceSet", "Delete Project Compliance Set",
        "Delete a compliance set from a project.",
        ComplianceSetIdInput, endpoints.DELETE_PROJECT_COMPLIANCE_SET,
        message="Successfully deleted compliance set {complianceSetId}", include_result=False,
    ),
    # --- Participants and source documents ---
    ToolSpec(
        "getProjectParticipants", "Get Project Participants",
        "List the users and teams participating in a project.",
        ProjectIdInput, endpoints.GET_PROJECT_PARTICIPANTS,
    ),
    ToolSpec(
        "updateProjectParticipants", "Update Project Participants",
        "Replace the participants of a project.",
        UpdateProjectParticipantsInput, endpoints.UPDATE_PROJECT_PARTICIPANTS,
        message="Successfully updated participants",
    ),
    ToolSpec(
        "listProjectSourceDocuments", "List Project Source Documents",
        "List the source documents uploaded to a project.",
        ProjectIdInput, endpoints.LIST_PROJECT_SOURCE_DOCUMENTS,
    ),
    # --- Custom project fields ---
    ToolSpec(
        "getCustomProjectFieldValuesForProject", "Get Custom Project Field Values",
        "Fetch the custom field values set on a project.",
        ProjectIdInput, endpoints.GET_PROJECT_CUSTOM_FIELD_VALUES,
    ),
    ToolSpec(
        "setCustomProjectFieldValuesForProject", "Set Custom Project Field Values",
        "Set custom field values on a project.",
        SetCustomProjectFieldValuesInput, endpoints.SET_PROJECT_CUSTOM_FIELD_VALUES,
        message="Successfully updated custom field values",
    ),
    ToolSpec(
        "listCustomProjectFields", "List Custom Project Fields",
        "List custom project field definitions, optionally by source.",
        ListCustomProjectFieldsInput, endpoints.LIST_CUSTOM_PROJECT_FIELDS,
    ),
    ToolSpec(
        "getCustomProjectField", "Get Custom Project Field",
        "Fetch one custom project field definition.",
        CustomProjectFieldIdInput, endpoints.GET_CUSTOM_PROJECT_FIELD,
    ),
    ToolSpec(
        "createCustomProjectField", "Create Custom Project Field",
        "Define a new custom project field.",
        CreateCustomProjectFieldInput, endpoints.CREATE_CUSTOM_PROJECT_FIELD,
        message="Successfully created custom project field",
    ),
    ToolSpec(
        "updateCustomProjectField", "Update Custom Project Field",
        "Update a custom project field with JSON Patch operations.",
        UpdateCustomProjectFieldInput, endpoints.UPDATE_CUSTOM_PROJECT_FIELD,
        message="Successfully updated custom project field",
    ),
    ToolSpec(
        "deleteCustomProjectField", "Delete Custom Project Field",
        "Delete a custom project field definition.",
        CustomProjectFieldIdInput, endpoints.DELETE_CUSTOM_PROJECT_FIELD,
        message="Successfully deleted custom project field {id}", include_result=False,
    ),
    # --- Project templates ---
    ToolSpec(
        "listProjectTemplates", "List Project Templates",
        "List the available project templates.",
        PageInput, endpoints.LIST_PROJECT_TEMPLATES,
    ),
    ToolSpec(
        "createProjectFromTemplate", "Create Project From Template",
        "Start an asynchronous task creating a project from a template.",
        CreateProjectFromTemplateInput, endpoints.CREATE_PROJECT_FROM_TEMPLATE,
        message="Project creation task accepted. Task ID: {taskId}, Project ID: {projectId}",
        include_result=False,
    ),
    # --- Project entries ---
    ToolSpec(
        "listProjectEntries", "List Project Entries",
        "List the questions (entries) of a project, optionally by section or subsection.",
        ListProjectEntriesInput, endpoints.LIST_PROJECT_ENTRIES,
    ),
    ToolSpec(
        "getProjectEntry", "Get Project Entry",
        "Fetch a single project entry.",
        GetProjectEntryInput, endpoints.GET_PROJECT_ENTRY,
    ),
    ToolSpec(
        "createProjectEntry", "Create Project Entry",
        "Add a question to a project section or subsection.",
        CreateProjectEntryInput, endpoints.CREATE_PROJECT_ENTRY,
        message="Successfully created project entry",
    ),
    ToolSpec(
        "updateProjectEntry", "Update Project Entry",
        "Change the question and/or answer of a project entry.",
        UpdateProjectEntryInput, endpoints.UPDATE_PROJECT_ENTRY,
        message="Successfully updated project entry",
    ),
    ToolSpec(
        "deleteProjectEntry", "Delete Project Entry",
        "Delete a project entry.",
        ProjectEntryIdInput, endpoints.DELETE_PROJECT_ENTRY,
        message="Successfully deleted project entry {projectEntryId}", include_result=False,
    ),
    # --- Sections ---
    ToolSpec(
        "listProjectSections", "List Project Sections",
        "List the sections of a project.",
        ListProjectSectionsInput, endpoints.LIST_SECTIONS,
    ),
    ToolSpec(
        "getProjectSection", "Get Project Section",
        "Fetch a single project section.",
        SectionIdInput, endpoints.GET_SECTION,
    ),
    ToolSpec(
        "createProjectSection", "Create Project Section",
        "Create a section in a project.",
        CreateSectionInput, endpoints.CREATE_SECTION,
        message="Successfully created section",
    ),
    ToolSpec(
        "updateProjectSection", "Update Project Section",
        "Rename or reposition a project section.",
        UpdateSectionInput, endpoints.UPDATE_SECTION,
        message="Successfully updated section",
    ),
    ToolSpec(
        "deleteProjectSection", "Delete Project Section",
        "Delete a project section.",
        SectionIdInput, endpoints.DELETE_SECTION,
        message="Successfully deleted section {sectionId}", include_result=False,
    ),
    # --- SubSections ---
    ToolSpec(
        "listProjectSubSections", "List Project SubSections",
        "List the subsections of a project, optionally within one section.",
        ListProjectSubSectionsInput, endpoints.LIST_SUB_SECTIONS,
    ),
    ToolSpec(
        "getProjectSubSection", "Get Project SubSection",
        "Fetch a single project subsection.",
        SubSectionIdInput, endpoints.GET_SUB_SECTION,
    ),
    ToolSpec(
        "createProjectSubSection", "Create Project SubSection",
        "Create a subsection inside a project section.",
        CreateSubSectionInput, endpoints.CREATE_SUB_SECTION,
        message="Successfully created subsection",
    ),
    ToolSpec(
        "updateProjectSubSection", "Update Project SubSection",
        "Rename or reposition a project subsection.",
        UpdateSubSectionInput, endpoints.UPDATE_SUB_SECTION,
        message="Successfully updated subsection",
    ),
    ToolSpec(
        "deleteProjectSubSection", "Delete Project SubSection",
        "Delete a project subsection.",
        SubSectionIdInput, endpoints.DELETE_SUB_SECTION,
        message="Successfully deleted subsection {subSectionId}", include_result=False,
    ),
)


# ==============================================================================
# Response Formatting Helpers
# ==============================================================================

class _MessageFields(dict):
    def __missing__(self, key):
        return "unknown"


def format_json(result: Any) -> str:
    """Render an API result as indented JSON; an empty (204) result renders as {}."""
    return json.dumps(result if result is not None else {}, indent=2)


def format_result(spec: ToolSpec, arguments: dict[str, Any], result: Any) -> str:
    """Render a tool result as text."""
    if spec.message is None:
        return format_json(result)

    fields = _MessageFields(arguments)
    if isinstance(result, dict):
        fields.update(result)
    message = spec.message.format_map(fields)

    if not spec.include_result:
        return message
    return f"{message}\n\n{format_json(result)}"


# ==============================================================================
# Tool Functions
# ==============================================================================

async def run_tool(spec: ToolSpec, api_client: LoopioAPIClient, params: ToolInput) -> str:
    """Execute one tool call: render the request, call Loopio, format the result.

    Errors are logged and re-raised so the MCP layer reports the call as failed.
    """
    arguments = params.request_arguments()

    try:
        result = await api_client.call(spec.endpoint, arguments, body=params.request_body())
    except Exception as e:
        logger.error(f"[Tools] {spec.name} failed: {e}")
        raise

    return format_result(spec, arguments, result)


async def read_library_entry(api_client: LoopioAPIClient, entry_id: str) -> str:
    """Fetch a library entry for the loopio://libraryEntry/{id} resource."""
    try:
        library_entry_id = int(entry_id)
    except ValueError:
        raise ValueError(f"Invalid library entry id: {entry_id!r}") from None

    entry = await api_client.call(
        endpoints.GET_LIBRARY_ENTRY,
        {"libraryEntryId": library_entry_id},
    )
    return format_json(entry)


def search_library_entries_prompt(query: str) -> str:
    """Prompt text guiding the agent to the library search tool."""
    return (
        f'Please search the Loopio library for entries related to: "{query}". '
        f"Use the listLibraryEntries tool with appropriate filters."
    )


def get_token_status(token_manager: TokenManager) -> str:
    """Render the token manager's diagnostics (never the token itself)."""
    return json.dumps(token_manager.status(), indent=2)


# ==============================================================================
# Registration
# ==============================================================================

def _make_tool_function(spec: ToolSpec, api_client: LoopioAPIClient):
    """Build the coroutine FastMCP registers for one ToolSpec.

    FastMCP derives the input schema from the ``params`` annotation, so it is
    set to the ToolSpec's input model.
    """
    async def tool_function(params) -> str:
        return await run_tool(spec, api_client, params)

    tool_function.__annotations__ = {"params": spec.input_model, "return": str}
    tool_function.__name__ = spec.name
    tool_function.__qualname__ = spec.name
    tool_function.__doc__ = spec.description
    return tool_function


def register_tools(mcp: FastMCP, api_client: LoopioAPIClient, token_manager: TokenManager) -> None:
    """Register every Loopio tool, the library entry resource and the search prompt."""
    for spec in TOOLS:
        mcp.add_tool(
            _make_tool_function(spec, api_client),
            name=spec.name,
            description=spec.description,
            annotations=spec.annotations,
        )

    @mcp.tool(
        name="getTokenStatus",
        annotations=ToolAnnotations(
            title="Get Token Status",
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
    )
    async def token_status() -> str:
        """Get information about the Loopio access token.

        Returns whether a token is held, how many times it has been acquired,
        consecutive refresh failures, and time until the provider-declared
        expiry. Useful for debugging authentication problems.
        """
        return get_token_status(token_manager)

    @mcp.resource(
        LIBRARY_ENTRY_RESOURCE_URI,
        name="libraryEntry",
        description="A Loopio library entry as JSON",
        mime_type="application/json",
    )
    async def library_entry(id: str) -> str:
        return await read_library_entry(api_client, id)

    @mcp.prompt(
        name="searchLibraryEntries",
        description="Search the Loopio library for entries related to a query",
    )
    def search_library_entries(query: str) -> str:
        return search_library_entries_prompt(query)

    logger.info(f"[Tools] Registered {len(TOOLS) + 1} tools, 1 resource, 1 prompt")
