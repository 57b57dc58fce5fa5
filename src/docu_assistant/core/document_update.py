"""
Incremental document updates from conversation turns.

Extracted content is mapped onto template sections, merged into the markdown
document section by section, written back through the file collaborator and
only then credited to the document's progress record. A failed write leaves
progress exactly as it was.
"""

import re
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .types import (
    ConversationContext,
    ConversationResponse,
    DocumentUpdateProgress,
    DocumentUpdateRecord,
    SectionUpdate,
    UpdateMode,
    UpdateResult,
)
from ..templates.registry import PLACEHOLDER_PATTERN, TemplateStructure
from ..tools.exceptions import DocumentNotFoundError, FileOperationError
from ..tools.file_system import FileSystem
from ..utils.logging import get_logger, log_performance

HEADING_PATTERN = re.compile(r"^(#{1,6})[ \t]+(.+?)[ \t]*#*[ \t]*$", re.MULTILINE)

# Extracted-content keys that always land in a specific section for an agent
AGENT_MAPPING_RULES: Dict[str, Dict[str, str]] = {
    "prd-creator": {
        "problemStatement": "Problem Statement",
        "targetUsers": "Target Users",
        "features": "Key Features",
        "goals": "Goals and Objectives",
    },
    "requirements-gatherer": {
        "functionalRequirements": "Functional Requirements",
        "nonFunctionalRequirements": "Non-Functional Requirements",
        "constraints": "Constraints",
    },
    "solution-architect": {
        "architecture": "System Architecture",
        "components": "Components",
        "dataFlow": "Data Flow",
    },
}

EXTRACTION_KEYWORDS: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "prd-creator": {
        "problemStatement": ("problem", "pain point", "struggle", "frustrat"),
        "targetUsers": ("user", "customer", "persona", "audience"),
        "goals": ("goal", "objective", "aim to", "success means"),
        "features": ("feature", "should be able to", "capabilit", "must let"),
    },
    "requirements-gatherer": {
        "nonFunctionalRequirements": ("performance", "latency", "secure", "availability", "scal"),
        "constraints": ("constraint", "limited to", "must not", "budget", "deadline"),
        "functionalRequirements": ("shall", "must", "should", "need to"),
    },
    "solution-architect": {
        "dataFlow": ("flow", "sends", "receives", "pipeline", "stream"),
        "components": ("component", "service", "module", "database"),
        "architecture": ("architecture", "layer", "pattern", "deploy"),
    },
}

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+|\n+")


def normalize_key(key: str) -> str:
    """``problemStatement``, ``PROBLEM_STATEMENT`` and ``{{PROBLEM_STATEMENT}}`` -> ``problem statement``."""
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", str(key))
    return " ".join(re.sub(r"[^A-Za-z0-9]+", " ", spaced).lower().split())


def is_unfilled(body: str) -> bool:
    """A section body that is blank or holds only placeholder tokens."""
    return not PLACEHOLDER_PATTERN.sub("", body).strip()


class DocumentUpdateEngine:
    """Merges conversational content into documents and tracks progress per path."""

    def __init__(
        self,
        file_system: FileSystem,
        mapping_rules: Optional[Dict[str, Dict[str, str]]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.logger = get_logger(__name__)
        self.file_system = file_system
        self.mapping_rules = mapping_rules if mapping_rules is not None else AGENT_MAPPING_RULES
        self._clock = clock or datetime.now
        self._progress: Dict[str, DocumentUpdateProgress] = {}

    async def update_document_from_conversation(
        self,
        document_path: str,
        conversation_response: ConversationResponse,
        template_structure: TemplateStructure,
        conversation_context: ConversationContext,
    ) -> UpdateResult:
        if not isinstance(document_path, str) or not document_path.strip():
            return UpdateResult(success=False, error="A document path is required")
        if template_structure is None or not template_structure.sections:
            return UpdateResult(success=False, error="A template structure with sections is required")

        extracted = getattr(conversation_response, "extracted_content", None) or {}
        updates = self.build_section_updates(extracted, template_structure, conversation_context)
        if not updates:
            self.logger.debug(f"No extracted content maps onto {document_path}")
            return UpdateResult(success=True, progress=self.get_update_progress(document_path))

        try:
            original = await self.file_system.read_file(document_path)
        except DocumentNotFoundError:
            self.logger.info(f"Document {document_path} does not exist yet, starting a new one")
            original = ""
        except FileOperationError as e:
            self.logger.error(f"Cannot read {document_path}: {e.message}")
            return UpdateResult(success=False, error=e.message)

        with log_performance(f"merge {len(updates)} section(s) into {document_path}"):
            content = original
            updated_sections: List[str] = []
            added_sections: List[str] = []
            for update in updates:
                existed = self.find_section(content, template_structure.sections[update.section].title) is not None
                content = self.apply_section_update(
                    content, update.section, update.content, update.mode, template_structure
                )
                updated_sections.append(update.section)
                if not existed:
                    added_sections.append(update.section)

        if content != original:
            try:
                await self.file_system.write_file(document_path, content)
            except FileOperationError as e:
                self.logger.error(f"Document update for {document_path} not saved: {e.message}")
                return UpdateResult(success=False, error=e.message)

        # No await between the write check above and the progress mutation below
        newly_completed = self._record_progress(
            document_path, content, updates, template_structure, conversation_context, len(content) - len(original)
        )

        self.logger.info(
            f"Updated {document_path}: {', '.join(updated_sections)}",
            extra={"newly_completed": newly_completed},
        )
        return UpdateResult(
            success=True,
            updated_sections=updated_sections,
            added_sections=added_sections,
            newly_completed=newly_completed,
            progress=self.get_update_progress(document_path),
        )

    def get_update_progress(self, document_path: str) -> DocumentUpdateProgress:
        """Progress for ``document_path``; a zeroed record for paths never updated."""
        progress = self._progress.get(document_path)
        if progress is None:
            return DocumentUpdateProgress(document_path=document_path)
        return DocumentUpdateProgress(
            document_path=progress.document_path,
            total_sections=progress.total_sections,
            completed_sections=progress.completed_sections,
            progress_percentage=progress.progress_percentage,
            template_id=progress.template_id,
            completed_section_names=list(progress.completed_section_names),
            update_history=list(progress.update_history),
            last_updated=progress.last_updated,
        )

    def reset_progress(self, document_path: str) -> None:
        self._progress.pop(document_path, None)

    def _record_progress(
        self,
        document_path: str,
        content: str,
        updates: List[SectionUpdate],
        structure: TemplateStructure,
        context: ConversationContext,
        characters_added: int,
    ) -> List[str]:
        progress = self._progress.setdefault(
            document_path,
            DocumentUpdateProgress(document_path=document_path, template_id=structure.template_id),
        )

        newly_completed = []
        for update in updates:
            if update.section in progress.completed_section_names:
                continue
            span = self.find_section(content, structure.sections[update.section].title)
            if span and not is_unfilled(content[span[1]:span[2]]):
                progress.completed_section_names.append(update.section)
                newly_completed.append(update.section)

        now = self._clock()
        progress.template_id = structure.template_id
        progress.total_sections = len(structure.sections)
        progress.completed_sections = len(progress.completed_section_names)
        progress.progress_percentage = (
            progress.completed_sections / progress.total_sections * 100 if progress.total_sections else 0.0
        )
        progress.last_updated = now
        progress.update_history.append(DocumentUpdateRecord(
            turn=getattr(context, "current_turn", 0) or 0,
            sections=[u.section for u in updates],
            timestamp=now,
            update_type=",".join(sorted({u.mode.value for u in updates})),
            characters_added=characters_added,
        ))
        return newly_completed

    # Mapping extracted content to sections

    def build_section_updates(
        self,
        extracted: Mapping[str, Any],
        structure: TemplateStructure,
        context: Optional[ConversationContext],
    ) -> List[SectionUpdate]:
        agent_name = getattr(context, "agent_name", None)
        turn = getattr(context, "current_turn", 1) or 1
        mode = UpdateMode.REPLACE if turn <= 1 else UpdateMode.APPEND

        merged: Dict[str, List[str]] = {}
        for key, value in extracted.items():
            section = self.find_target_section(str(key), structure, agent_name)
            text = self._value_to_text(value)
            if section is None:
                self.logger.debug(f"Ignoring extracted field with no target section: {key}")
                continue
            if text:
                merged.setdefault(section, []).append(text)

        updates = [
            SectionUpdate(
                section=section,
                content=self.format_for_section(section, "\n".join(parts)),
                mode=mode,
                order=structure.sections[section].order,
            )
            for section, parts in merged.items()
        ]
        return sorted(updates, key=lambda u: u.order)

    def find_target_section(self, key: str, structure: TemplateStructure, agent_name: Optional[str] = None) -> Optional[str]:
        normalized = normalize_key(key)
        if not normalized:
            return None

        rules = self.mapping_rules.get(agent_name or "", {})
        for rule_key, section in rules.items():
            if normalize_key(rule_key) == normalized and section in structure.sections:
                return section

        for token, placeholder in structure.placeholders.items():
            if normalize_key(token) == normalized:
                return placeholder.section

        ordered = structure.ordered_sections()
        for section in ordered:
            if normalize_key(section) == normalized or normalize_key(structure.sections[section].title) == normalized:
                return section

        for section in ordered:
            if normalized in normalize_key(section):
                return section

        return None

    @staticmethod
    def _value_to_text(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return "\n".join(f"- {str(item).strip()}" for item in value if str(item).strip())
        if isinstance(value, Mapping):
            return "\n".join(f"- {k}: {v}" for k, v in value.items())
        return str(value).strip()

    @staticmethod
    def format_for_section(section_name: str, content: str) -> str:
        """Requirement sections become bullet lists, feature sections ``###`` entries."""
        lowered = section_name.lower()
        lines = [line.strip() for line in content.splitlines() if line.strip()]

        if "requirements" in lowered:
            return "\n".join(line if line.startswith(("- ", "* ")) else f"- {line}" for line in lines)
        if "features" in lowered:
            entries = [line[2:].strip() if line.startswith(("- ", "* ")) else line for line in lines]
            return "\n\n".join(line if line.startswith("#") else f"### {line}" for line in entries)
        return content.strip()

    # Markdown section editing

    @staticmethod
    def find_section(content: str, title: str) -> Optional[Tuple[int, int, int]]:
        """``(header_start, body_start, body_end)`` for the heading titled ``title``."""
        wanted = title.strip().lower()
        headings = list(HEADING_PATTERN.finditer(content))

        for index, match in enumerate(headings):
            if match.group(2).strip().lower() != wanted:
                continue

            level = len(match.group(1))
            body_start = match.end()
            if content[body_start:body_start + 1] == "\n":
                body_start += 1

            body_end = len(content)
            for later in headings[index + 1:]:
                if len(later.group(1)) <= level:
                    body_end = later.start()
                    break
            return match.start(), body_start, body_end

        return None

    def apply_section_update(
        self,
        content: str,
        section_name: str,
        body: str,
        mode: UpdateMode,
        structure: Optional[TemplateStructure] = None,
    ) -> str:
        """Return ``content`` with ``body`` merged into ``section_name``.

        Appending or prepending text the section already contains is a no-op.
        """
        spec = structure.sections.get(section_name) if structure else None
        title = spec.title if spec else section_name
        body = body.strip()

        span = self.find_section(content, title)
        if span is None:
            return self._insert_section(content, section_name, body, structure)

        header_start, body_start, body_end = span
        existing = content[body_start:body_end].strip()

        if is_unfilled(existing) or mode == UpdateMode.REPLACE:
            new_body = body
        elif body in existing:
            return content
        elif mode == UpdateMode.PREPEND:
            new_body = f"{body}\n\n{existing}"
        else:
            new_body = f"{existing}\n\n{body}"

        head = content[:body_start]
        if not head.endswith("\n"):
            head += "\n"
        rest = content[body_end:]
        merged = f"{head}\n{new_body}\n"
        if rest:
            merged += "\n" + rest
        return merged

    def _insert_section(
        self,
        content: str,
        section_name: str,
        body: str,
        structure: Optional[TemplateStructure],
    ) -> str:
        spec = structure.sections.get(section_name) if structure else None
        header = spec.header if spec else f"## {section_name}"
        block = f"{header}\n\n{body}\n"

        if spec and structure:
            # Insert before the first later-ordered section already in the document
            for later_name in structure.ordered_sections():
                later = structure.sections[later_name]
                if later.order <= spec.order:
                    continue
                span = self.find_section(content, later.title)
                if span:
                    return f"{content[:span[0]]}{block}\n{content[span[0]:]}"

        if not content.strip():
            return block
        return f"{content.rstrip()}\n\n{block}"


def extract_structured_content(text: str, agent_name: Optional[str]) -> Dict[str, str]:
    """Sort the sentences of ``text`` into an agent's content fields by keyword.

    Each sentence goes to the first field whose keywords it mentions; agents
    without keyword tables extract nothing.
    """
    fields = EXTRACTION_KEYWORDS.get(agent_name or "")
    if not fields or not text:
        return {}

    buckets: Dict[str, List[str]] = {}
    for sentence in _SENTENCE_SPLIT.split(text.strip()):
        sentence = sentence.strip()
        if not sentence:
            continue
        lowered = sentence.lower()
        for field_name, keywords in fields.items():
            if any(keyword in lowered for keyword in keywords):
                buckets.setdefault(field_name, []).append(sentence)
                break

    return {field_name: "\n".join(sentences) for field_name, sentences in buckets.items()}
