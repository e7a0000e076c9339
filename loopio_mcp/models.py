"""Pydantic models for the Loopio MCP Server.

Two families of models live here:
- Request bodies, shaped exactly as the Loopio API expects them
- Tool inputs, validated by FastMCP before a tool runs; each knows how to
  produce its path/query arguments and its request body

Field names are snake_case in Python and camelCase on the wire and in the
tool schemas.
"""
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


ProjectType = Literal["RFP", "RFI", "DDQ", "SQ", "PP", "OTHER"]
ParticipantType = Literal["USER", "TEAM"]
ParticipantRole = Literal["ADMIN", "CONTRIBUTOR", "REVIEWER"]
CustomProjectFieldSource = Literal["project", "salesforce", "msDynamics"]
CustomProjectFieldType = Literal["SHORT_TEXT", "DROPDOWN"]
JsonPatchOp = Literal["add", "remove", "replace", "move", "copy", "test"]

MERGE_VARIABLES_INLINE = "@mergeVariables"


class LoopioModel(BaseModel):
    """Base model with camelCase aliases on the wire."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="forbid",
    )

    def to_payload(self) -> Any:
        """Serialize for the API. Fields never set are omitted; explicit nulls are kept."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


# ==============================================================================
# Shared Building Blocks
# ==============================================================================

class Reference(LoopioModel):
    """Reference to another Loopio object by ID."""
    id: int


class QuestionText(LoopioModel):
    """A question attached to a library entry."""
    text: str = Field(..., description="Question text", min_length=1)


class AnswerText(LoopioModel):
    """Answer body; text may be null when compliance answers are used."""
    text: Optional[str] = Field(..., description="Answer text")


class JsonPatchOperation(LoopioModel):
    """A single RFC 6902 JSON Patch operation."""
    op: JsonPatchOp = Field(..., description="JSON Patch operation")
    path: str = Field(..., description="JSON path to the field (e.g., '/answer/text', '/tags')")
    value: Any = Field(default=None, description="Value for the operation")
    from_: Optional[str] = Field(
        default=None,
        alias="from",
        description="Source path for move/copy operations",
    )

    @model_validator(mode="after")
    def check_operands(self):
        if self.op in ("move", "copy") and not self.from_:
            raise ValueError(f"'{self.op}' operation requires 'from'")
        if self.op in ("add", "replace", "test") and "value" not in self.model_fields_set:
            raise ValueError(f"'{self.op}' operation requires 'value'")
        return self


class DateTimeRangeFilter(LoopioModel):
    """Date range bounds (ISO 8601)."""
    eq: Optional[str] = Field(default=None, description="Equal to date (ISO 8601)")
    gt: Optional[str] = Field(default=None, description="Greater than date (ISO 8601)")
    gte: Optional[str] = Field(default=None, description="Greater than or equal to date (ISO 8601)")
    lt: Optional[str] = Field(default=None, description="Less than date (ISO 8601)")
    lte: Optional[str] = Field(default=None, description="Less than or equal to date (ISO 8601)")


class LibraryLocation(LoopioModel):
    """Library location used to narrow a search."""
    stack_id: int = Field(..., alias="stackID", description="Stack ID")
    category_id: Optional[int] = Field(default=None, alias="categoryID", description="Category ID")
    sub_category_id: Optional[int] = Field(default=None, alias="subCategoryID", description="SubCategory ID")


class LibrarySearchOptions(LoopioModel):
    """Filter object for listing library entries (sent as JSON in the query string)."""
    search_query: Optional[str] = Field(default=None, description="Search query text")
    language: Optional[str] = Field(default=None, description="Language code (e.g., 'en')")
    last_updated_date: Optional[DateTimeRangeFilter] = Field(default=None, description="Last updated date range")
    locations: Optional[list[LibraryLocation]] = Field(default=None, description="Restrict to library locations")
    synonyms: Optional[bool] = Field(default=None, description="Include synonyms of the search terms")
    exact_phrase: Optional[bool] = Field(default=None, description="Match the search query as an exact phrase")
    has_attachment: Optional[bool] = Field(default=None, description="Filter entries with attachments")
    search_in_questions: Optional[bool] = Field(default=None, description="Search within questions")
    search_in_answers: Optional[bool] = Field(default=None, description="Search within answers")
    search_in_tags: Optional[bool] = Field(default=None, description="Search within tags")


class ComplianceOption(LoopioModel):
    """One selectable option of a compliance set."""
    label: str = Field(..., description="Option label")


class ProjectParticipant(LoopioModel):
    """A user or team participating in a project."""
    type: ParticipantType = Field(..., description="Participant type")
    id: int = Field(..., description="User or Team ID")
    role: ParticipantRole = Field(..., description="Participant role")


# ==============================================================================
# API Request Bodies
# ==============================================================================

class LibraryEntryLocation(LoopioModel):
    stack: Reference
    category: Optional[Reference] = None
    sub_category: Optional[Reference] = None


class CreateLibraryEntryRequest(LoopioModel):
    """Body for POST /libraryEntries."""
    questions: list[QuestionText] = Field(..., min_length=1)
    answer: AnswerText
    language_code: Optional[str] = None
    location: LibraryEntryLocation
    tags: Optional[list[str]] = None


class CreateProjectRequest(LoopioModel):
    """Body for POST /projects and project-from-template creation."""
    name: str = Field(..., min_length=1)
    project_type: ProjectType
    company_name: str
    due_date: str
    description: Optional[str] = None
    owner: Optional[Reference] = None
    custom_project_field_values: Optional[dict[str, Optional[str]]] = None
    merge_variable_values: Optional[dict[str, Optional[str]]] = None


class UpdateProjectRequest(LoopioModel):
    status: str = Field(..., min_length=1)


class ComplianceSetRequest(LoopioModel):
    """Body for creating or replacing a project compliance set."""
    label: str
    short_name: str = Field(..., min_length=1)
    options: list[ComplianceOption]


class CreateCustomProjectFieldRequest(LoopioModel):
    name: str = Field(..., max_length=40)
    instructions: Optional[str] = Field(default=None, max_length=40)
    is_required: Optional[bool] = None
    field_type: Optional[CustomProjectFieldType] = None
    dropdown_values: Optional[list[str]] = None


class CreateProjectEntryRequest(LoopioModel):
    project_id: int
    section_id: Optional[int] = None
    sub_section_id: Optional[int] = None
    question: str
    answer: Optional[AnswerText] = None


class UpdateProjectEntryRequest(LoopioModel):
    question: Optional[str] = None
    answer: Optional[AnswerText] = None


class CreateSectionRequest(LoopioModel):
    project_id: int
    name: str = Field(..., min_length=1)
    position: Optional[int] = None


class UpdateSectionRequest(LoopioModel):
    name: Optional[str] = None
    position: Optional[int] = None


class CreateSubSectionRequest(LoopioModel):
    project_id: int
    section_id: int
    name: str = Field(..., min_length=1)
    position: Optional[int] = None


class UpdateSubSectionRequest(LoopioModel):
    name: Optional[str] = None
    position: Optional[int] = None


# ==============================================================================
# Tool Input Models
# ==============================================================================

class ToolInput(LoopioModel):
    """Base class for tool inputs."""

    def request_arguments(self) -> dict[str, Any]:
        """Path and query arguments keyed by their camelCase wire names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def request_body(self) -> Any:
        """JSON body to send, or None for body-less requests."""
        return None

    def _provided(self, *names: str) -> dict[str, Any]:
        """The named fields that have a value, keyed by attribute name."""
        return {name: getattr(self, name) for name in names if getattr(self, name) is not None}


class PageInput(ToolInput):
    """Pagination parameters."""
    page: Optional[int] = Field(default=None, description="Page number (default: 1)", ge=1)
    page_size: Optional[int] = Field(default=None, description="Items per page", ge=1)


# ------------------------------------------------------------------------------
# Customers
# ------------------------------------------------------------------------------

class CustomerIdInput(ToolInput):
    customer_id: int = Field(..., description="Customer ID", ge=1)


# ------------------------------------------------------------------------------
# Library Entries
# ------------------------------------------------------------------------------

class ListLibraryEntriesInput(PageInput):
    """Input parameters for listLibraryEntries."""
    page_size: Optional[int] = Field(
        default=None,
        description="Number of items per page (default: 10, max: 200)",
        ge=1,
        le=200,
    )
    filter: Optional[LibrarySearchOptions] = Field(
        default=None,
        description="Filter options for library entries",
    )


class LibraryEntryIdInput(ToolInput):
    library_entry_id: int = Field(..., description="Library Entry ID", ge=1)


class GetLibraryEntryInput(LibraryEntryIdInput):
    """Input parameters for getLibraryEntry."""
    inline_merge_variables: bool = Field(
        default=False,
        description="Substitute merge variable placeholders",
    )

    def request_arguments(self) -> dict[str, Any]:
        arguments = super().request_arguments()
        arguments.pop("inlineMergeVariables", None)
        if self.inline_merge_variables:
            arguments["inline"] = [MERGE_VARIABLES_INLINE]
        return arguments


class LibraryEntryDraft(ToolInput):
    """Flat description of a library entry to create."""
    questions: list[QuestionText] = Field(
        ...,
        description="Array of questions for this entry",
        min_length=1,
    )
    answer_text: Optional[str] = Field(
        ...,
        description="Answer text (can be null if using compliance answers)",
    )
    stack_id: int = Field(..., description="Stack ID for the library location", ge=1)
    category_id: Optional[int] = Field(default=None, description="Category ID (optional)", ge=1)
    sub_category_id: Optional[int] = Field(default=None, description="SubCategory ID (optional)", ge=1)
    language_code: Optional[str] = Field(default=None, description="Language code (default: 'en')")
    tags: Optional[list[str]] = Field(default=None, description="Array of tag strings")

    def to_request(self) -> CreateLibraryEntryRequest:
        location = {"stack": Reference(id=self.stack_id)}
        if self.category_id:
            location["category"] = Reference(id=self.category_id)
        if self.sub_category_id:
            location["sub_category"] = Reference(id=self.sub_category_id)

        return CreateLibraryEntryRequest(
            questions=self.questions,
            answer=AnswerText(text=self.answer_text),
            location=LibraryEntryLocation(**location),
            **self._provided("language_code", "tags"),
        )


class CreateLibraryEntryInput(LibraryEntryDraft):
    """Input parameters for createLibraryEntry."""

    def request_body(self) -> Any:
        return self.to_request().to_payload()


class BulkLibraryEntry(LibraryEntryDraft):
    answer_text: str = Field(..., description="Answer text")


class BulkCreateLibraryEntriesInput(ToolInput):
    """Input parameters for bulkCreateLibraryEntries."""
    entries: list[BulkLibraryEntry] = Field(
        ...,
        description="Array of library entries to create",
        min_length=1,
    )

    def request_body(self) -> Any:
        return [entry.to_request().to_payload() for entry in self.entries]


class UpdateLibraryEntryInput(LibraryEntryIdInput):
    """Input parameters for updateLibraryEntry."""
    operations: list[JsonPatchOperation] = Field(
        ...,
        description="Array of JSON Patch operations",
        min_length=1,
    )

    def request_body(self) -> Any:
        return [operation.to_payload() for operation in self.operations]


class LibraryEntryHistoryInput(PageInput):
    library_entry_id: int = Field(..., description="Library Entry ID", ge=1)


class LibraryEntryHistoryItemInput(LibraryEntryIdInput):
    history_id: int = Field(..., description="History Item ID", ge=1)


# ------------------------------------------------------------------------------
# Stacks and Files
# ------------------------------------------------------------------------------

class ListStacksInput(ToolInput):
    fields: Optional[str] = Field(
        default=None,
        description="Fields to include (e.g., '@wide' for full structure)",
    )


class FileIdInput(ToolInput):
    file_id: int = Field(..., description="File ID", ge=1)


# ------------------------------------------------------------------------------
# Projects
# ------------------------------------------------------------------------------

class ListProjectsInput(PageInput):
    """Input parameters for listProjects."""
    rfx_types: Optional[list[ProjectType]] = Field(
        default=None,
        description="Filter by project types (RFP, RFI, DDQ, SQ, PP, OTHER)",
    )
    owners: Optional[list[int]] = Field(default=None, description="Filter by owner IDs")


class ProjectIdInput(ToolInput):
    project_id: int = Field(..., description="Project ID", ge=1)


class GetProjectInput(ProjectIdInput):
    fields: Optional[str] = Field(default=None, description="Fields to include in response")


class ProjectDetails(ToolInput):
    """Fields shared by the project creation tools."""
    name: str = Field(..., description="Project name", min_length=1)
    project_type: ProjectType = Field(..., description="Project type")
    company_name: str = Field(..., description="Company name")
    due_date: str = Field(..., description="Due date (ISO 8601 format)")
    description: Optional[str] = Field(default=None, description="Project description")
    owner_id: Optional[int] = Field(default=None, description="Owner user ID", ge=1)

    def _project_request(self, **extra: Any) -> CreateProjectRequest:
        fields = dict(
            name=self.name,
            project_type=self.project_type,
            company_name=self.company_name,
            due_date=self.due_date,
            description=self.description or None,
        )
        if self.owner_id:
            fields["owner"] = Reference(id=self.owner_id)
        return CreateProjectRequest(**fields, **extra)


class CreateProjectInput(ProjectDetails):
    """Input parameters for createProject."""
    custom_project_field_values: Optional[dict[str, str]] = Field(
        default=None,
        description="Custom field values",
    )
    merge_variable_values: Optional[dict[str, str]] = Field(
        default=None,
        description="Merge variable values",
    )

    def request_body(self) -> Any:
        extra = self._provided("custom_project_field_values", "merge_variable_values")
        return self._project_request(**extra).to_payload()


class UpdateProjectInput(ProjectIdInput):
    status: str = Field(..., description="New project status", min_length=1)

    def request_body(self) -> Any:
        return UpdateProjectRequest(status=self.status).to_payload()


class ProjectSummaryListInput(ToolInput):
    last_updated_date_gt: str = Field(
        ...,
        description="Get projects updated after this date (ISO 8601)",
        min_length=1,
    )


# ------------------------------------------------------------------------------
# Compliance Sets, Participants
# ------------------------------------------------------------------------------

class ComplianceSetIdInput(ProjectIdInput):
    compliance_set_id: int = Field(..., description="Compliance Set ID", ge=1)


class CreateComplianceSetInput(ProjectIdInput):
    """Input parameters for createComplianceSet."""
    label: str = Field(..., description="Compliance set label")
    short_name: str = Field(..., description="Short name (min 1 character)", min_length=1)
    options: list[ComplianceOption] = Field(..., description="Compliance options")

    def request_body(self) -> Any:
        return ComplianceSetRequest(
            label=self.label,
            short_name=self.short_name,
            options=self.options,
        ).to_payload()


class UpdateComplianceSetInput(CreateComplianceSetInput):
    compliance_set_id: int = Field(..., description="Compliance Set ID", ge=1)


class UpdateProjectParticipantsInput(ProjectIdInput):
    participants: list[ProjectParticipant] = Field(..., description="Array of participants")

    def request_body(self) -> Any:
        return [participant.to_payload() for participant in self.participants]


# ------------------------------------------------------------------------------
# Custom Project Fields
# ------------------------------------------------------------------------------

class SetCustomProjectFieldValuesInput(ProjectIdInput):
    values: dict[str, Optional[str]] = Field(..., description="Custom field values (key-value pairs)")

    def request_body(self) -> Any:
        return dict(self.values)


class ListCustomProjectFieldsInput(ToolInput):
    source: Optional[CustomProjectFieldSource] = Field(
        default=None,
        description="Filter by source (project, salesforce, msDynamics)",
    )


class CustomProjectFieldIdInput(ToolInput):
    id: int = Field(..., description="Custom Project Field ID", ge=1)


class CreateCustomProjectFieldInput(ToolInput):
    """Input parameters for createCustomProjectField."""
    name: str = Field(..., description="Field name", min_length=1, max_length=40)
    instructions: Optional[str] = Field(
        default=None,
        description="Instructions for filling out the field",
        max_length=40,
    )
    is_required: Optional[bool] = Field(default=None, description="Whether field is required")
    field_type: Optional[CustomProjectFieldType] = Field(default=None, description="Field type")
    dropdown_values: Optional[list[str]] = Field(
        default=None,
        description="Dropdown values (required if fieldType is DROPDOWN)",
    )

    @model_validator(mode="after")
    def check_dropdown_values(self):
        if self.field_type == "DROPDOWN" and not self.dropdown_values:
            raise ValueError("dropdownValues are required when fieldType is DROPDOWN")
        return self

    def request_body(self) -> Any:
        return CreateCustomProjectFieldRequest(
            **self._provided("name", "instructions", "is_required", "field_type", "dropdown_values")
        ).to_payload()


class UpdateCustomProjectFieldInput(CustomProjectFieldIdInput):
    operations: list[JsonPatchOperation] = Field(
        ...,
        description="Array of JSON Patch operations",
        min_length=1,
    )

    def request_body(self) -> Any:
        return [operation.to_payload() for operation in self.operations]


# ------------------------------------------------------------------------------
# Project Templates
# ------------------------------------------------------------------------------

class CreateProjectFromTemplateInput(ProjectDetails):
    """Input parameters for createProjectFromTemplate."""
    project_template_id: int = Field(..., description="Project Template ID", ge=1)

    def request_body(self) -> Any:
        return self._project_request().to_payload()


# ------------------------------------------------------------------------------
# Project Entries
# ------------------------------------------------------------------------------

class ListProjectEntriesInput(PageInput):
    project_id: int = Field(..., description="Project ID", ge=1)
    section_id: Optional[int] = Field(default=None, description="Filter by section ID", ge=1)
    sub_section_id: Optional[int] = Field(default=None, description="Filter by subsection ID", ge=1)
    inline: Optional[list[str]] = Field(default=None, description="Inline options")


class ProjectEntryIdInput(ToolInput):
    project_entry_id: int = Field(..., description="Project Entry ID", ge=1)


class GetProjectEntryInput(ProjectEntryIdInput):
    inline: Optional[list[str]] = Field(default=None, description="Inline options")


class CreateProjectEntryInput(ProjectIdInput):
    """Input parameters for createProjectEntry."""
    section_id: Optional[int] = Field(
        default=None,
        description="Section ID (provide either sectionId or subSectionId)",
        ge=1,
    )
    sub_section_id: Optional[int] = Field(
        default=None,
        description="SubSection ID (provide either sectionId or subSectionId)",
        ge=1,
    )
    question: str = Field(..., description="Entry question text")
    answer_text: Optional[str] = Field(default=None, description="Answer text")

    @model_validator(mode="after")
    def check_parent(self):
        if self.section_id is None and self.sub_section_id is None:
            raise ValueError("Either sectionId or subSectionId must be provided")
        return self

    def request_body(self) -> Any:
        fields = self._provided("project_id", "section_id", "sub_section_id", "question")
        if "answer_text" in self.model_fields_set:
            fields["answer"] = AnswerText(text=self.answer_text)
        return CreateProjectEntryRequest(**fields).to_payload()


class UpdateProjectEntryInput(ProjectEntryIdInput):
    """Input parameters for updateProjectEntry."""
    question: Optional[str] = Field(default=None, description="Updated question text")
    answer_text: Optional[str] = Field(default=None, description="Updated answer text")

    @model_validator(mode="after")
    def check_changes(self):
        if self.question is None and "answer_text" not in self.model_fields_set:
            raise ValueError("Provide question and/or answerText to update")
        return self

    def request_body(self) -> Any:
        fields = self._provided("question")
        if "answer_text" in self.model_fields_set:
            fields["answer"] = AnswerText(text=self.answer_text)
        return UpdateProjectEntryRequest(**fields).to_payload()


# ------------------------------------------------------------------------------
# Sections and SubSections
# ------------------------------------------------------------------------------

class ListProjectSectionsInput(PageInput):
    project_id: int = Field(..., description="Project ID", ge=1)


class SectionIdInput(ToolInput):
    section_id: int = Field(..., description="Section ID", ge=1)


class CreateSectionInput(ProjectIdInput):
    name: str = Field(..., description="Section name", min_length=1)
    position: Optional[int] = Field(default=None, description="Section position", ge=0)

    def request_body(self) -> Any:
        return CreateSectionRequest(**self._provided("project_id", "name", "position")).to_payload()


class UpdateSectionInput(SectionIdInput):
    name: Optional[str] = Field(default=None, description="Updated section name", min_length=1)
    position: Optional[int] = Field(default=None, description="Updated section position", ge=0)

    @model_validator(mode="after")
    def check_changes(self):
        if self.name is None and self.position is None:
            raise ValueError("Provide name and/or position to update")
        return self

    def request_body(self) -> Any:
        return UpdateSectionRequest(**self._provided("name", "position")).to_payload()


class ListProjectSubSectionsInput(PageInput):
    project_id: int = Field(..., description="Project ID", ge=1)
    section_id: Optional[int] = Field(default=None, description="Filter by section ID", ge=1)


class SubSectionIdInput(ToolInput):
    sub_section_id: int = Field(..., description="SubSection ID", ge=1)


class CreateSubSectionInput(ProjectIdInput):
    section_id: int = Field(..., description="Section ID", ge=1)
    name: str = Field(..., description="SubSection name", min_length=1)
    position: Optional[int] = Field(default=None, description="SubSection position", ge=0)

    def request_body(self) -> Any:
        return CreateSubSectionRequest(
            **self._provided("project_id", "section_id", "name", "position")
        ).to_payload()


class UpdateSubSectionInput(SubSectionIdInput):
    name: Optional[str] = Field(default=None, description="Updated subsection name", min_length=1)
    position: Optional[int] = Field(default=None, description="Updated subsection position", ge=0)

    @model_validator(mode="after")
    def check_changes(self):
        if self.name is None and self.position is None:
            raise ValueError("Provide name and/or position to update")
        return self

    def request_body(self) -> Any:
        return UpdateSubSectionRequest(**self._provided("name", "position")).to_payload()
