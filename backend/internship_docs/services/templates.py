"""
Template Resolver

The engine renders exactly two layouts, one per ``DocumentKind``. Each is a
fixed sequence of styled blocks whose text carries ``{{field_name}}``
placeholders. There is no way to load a template at runtime.

Values are XML-escaped on substitution because the renderer interprets the
block text as paragraph markup (``<b>``, ``<br/>``). A participant named
``<font size=90>`` must print literally, not restyle the document.
"""

import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Mapping, Tuple
from xml.sax.saxutils import escape

from internship_docs.models.enums import DocumentKind

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([a-zA-Z_][a-zA-Z0-9_]*)\s*\}\}")


@dataclass(frozen=True)
class TemplateBlock:
    style: str
    text: str


@dataclass(frozen=True)
class DocumentTemplate:
    kind: DocumentKind
    title: str
    blocks: Tuple[TemplateBlock, ...]

    @property
    def fields(self) -> FrozenSet[str]:
        """Every placeholder name the template references."""
        names = set()
        for block in self.blocks:
            names.update(PLACEHOLDER_PATTERN.findall(block.text))
        return frozenset(names)


@dataclass(frozen=True)
class ResolvedDocument:
    """Template output: styled blocks with all placeholders substituted."""

    kind: DocumentKind
    title: str
    blocks: Tuple[TemplateBlock, ...]

    def as_text(self) -> str:
        return "\n".join(block.text for block in self.blocks)


OFFER_LETTER_TEMPLATE = DocumentTemplate(
    kind=DocumentKind.OFFER_LETTER,
    title="Internship Offer Letter",
    blocks=(
        TemplateBlock("organization", "{{organization_name}}"),
        TemplateBlock("title", "INTERNSHIP OFFER LETTER"),
        TemplateBlock("body", "<b>Date:</b> {{issued_date}}"),
        TemplateBlock("body", "<b>To:</b> {{participant_name}}"),
        TemplateBlock("body", "<b>Email:</b> {{participant_contact}}"),
        TemplateBlock("body", "Dear {{participant_name}},"),
        TemplateBlock(
            "body",
            "We are pleased to offer you an internship position with "
            "{{organization_name}}. Congratulations on being selected for this opportunity!",
        ),
        TemplateBlock("section", "Internship Details"),
        TemplateBlock("detail", "<b>Position:</b> {{role_title}}"),
        TemplateBlock("detail", "<b>Department/Team:</b> {{department}}"),
        TemplateBlock("detail", "<b>Start Date:</b> {{start_date}}"),
        TemplateBlock("detail", "<b>End Date:</b> {{end_date}}"),
        TemplateBlock("detail", "<b>Duration:</b> {{duration_months}} months"),
        TemplateBlock("detail", "<b>Stipend:</b> {{compensation}}"),
        TemplateBlock("detail", "<b>Location:</b> {{location}}"),
        TemplateBlock("detail", "<b>Reporting Manager:</b> {{sponsor_name}}"),
        TemplateBlock(
            "body",
            "Please confirm your acceptance of this offer within 5 business days. "
            "This offer remains verifiable until {{expires_date}}.",
        ),
        TemplateBlock("signature", "Sincerely,<br/><b>{{sponsor_name}}</b><br/>{{sponsor_title}}<br/>{{organization_name}}"),
        TemplateBlock("section", "Document Verification"),
        TemplateBlock("body", "This document can be verified using the code below:"),
        TemplateBlock("code", "{{verification_code}}"),
        TemplateBlock(
            "footer",
            "Electronically generated document. No physical signature required.<br/>"
            "Generated on {{issued_date}} | Reference: {{serial_number}} | Document ID: {{document_id}}",
        ),
    ),
)

CERTIFICATE_TEMPLATE = DocumentTemplate(
    kind=DocumentKind.COMPLETION_CERTIFICATE,
    title="Internship Completion Certificate",
    blocks=(
        TemplateBlock("organization", "{{organization_name}}"),
        TemplateBlock("title", "CERTIFICATE OF INTERNSHIP COMPLETION"),
        TemplateBlock("body", "This is to certify that"),
        TemplateBlock("recipient", "{{participant_name}}"),
        TemplateBlock(
            "body",
            "has successfully completed the internship program and demonstrated "
            "dedication, professionalism and competence throughout the internship period.",
        ),
        TemplateBlock("section", "Internship Details"),
        TemplateBlock("detail", "<b>Internship Title:</b> {{role_title}}"),
        TemplateBlock("detail", "<b>Internship Period:</b> {{start_date}} to {{end_date}}"),
        TemplateBlock("detail", "<b>Completion Date:</b> {{completion_date}}"),
        TemplateBlock("detail", "<b>Duration:</b> {{duration_months}} months"),
        TemplateBlock("section", "Skills and Knowledge Acquired"),
        TemplateBlock("body", "<i>{{skills_formatted}}</i>"),
        TemplateBlock("section", "Overall Performance"),
        TemplateBlock("grade", "{{performance_label}}"),
        TemplateBlock(
            "signature",
            "<b>{{hr_manager_name}}</b><br/>HR Manager<br/><br/>"
            "<b>{{sponsor_name}}</b><br/>Internship Supervisor",
        ),
        TemplateBlock("section", "Certificate Verification"),
        TemplateBlock("body", "This certificate can be verified using the code:"),
        TemplateBlock("code", "{{verification_code}}"),
        TemplateBlock(
            "footer",
            "Certificate #: {{serial_number}}<br/>"
            "Issued on {{issued_date}} | This is an electronically generated certificate.",
        ),
    ),
)

TEMPLATES: Dict[DocumentKind, DocumentTemplate] = {
    DocumentKind.OFFER_LETTER: OFFER_LETTER_TEMPLATE,
    DocumentKind.COMPLETION_CERTIFICATE: CERTIFICATE_TEMPLATE,
}


def substitute(text: str, fields: Mapping[str, str]) -> str:
    """Replace each placeholder with its escaped value; unknown names become ''."""
    return PLACEHOLDER_PATTERN.sub(
        lambda match: escape(str(fields.get(match.group(1)) or "")),
        text,
    )


def resolve_template(kind: DocumentKind, fields: Mapping[str, str]) -> ResolvedDocument:
    """Fill the fixed template for ``kind`` with ``fields``.

    A missing field renders blank instead of failing, so a cosmetic gap such
    as an absent department never blocks issuance.
    """
    template = TEMPLATES[DocumentKind(kind)]
    blocks: List[TemplateBlock] = [
        TemplateBlock(block.style, substitute(block.text, fields))
        for block in template.blocks
    ]
    return ResolvedDocument(kind=template.kind, title=template.title, blocks=tuple(blocks))
