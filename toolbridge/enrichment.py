"""Cross-reference metadata for biological identifiers found in tool results.

A mapping result gets an extra `_idEnrichment` entry listing the identifiers
detected anywhere in it and, for each identifier type some connected server
accepts, which servers those are and how they expect the ID. Other results,
and results with nothing detected, are returned unchanged.

Which servers accept which identifier types comes from the `id_capabilities`
table of each server config; only servers that actually connected are used.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Pattern, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .config import IdCapabilities, ServerConfig

logger = logging.getLogger(__name__)

ENRICHMENT_KEY = "_idEnrichment"


class IdType(str, Enum):
    UNIPROT_ACCESSION = "uniprot_accession"
    ENSEMBL_GENE = "ensembl_gene"
    ENSEMBL_TRANSCRIPT = "ensembl_transcript"
    ENSEMBL_PROTEIN = "ensembl_protein"
    NCBI_GENE = "ncbi_gene"
    PDB = "pdb"
    NCT = "nct"
    PMID = "pmid"
    DOI = "doi"
    CHEMBL = "chembl"
    DRUGBANK = "drugbank"
    HGNC = "hgnc"
    ORCID = "orcid"
    ROR = "ror"
    CROSSREF_FUNDER = "crossref_funder"


@dataclass(frozen=True)
class IdPattern:
    id_type: IdType
    # Group 1 is the identifier when present, otherwise the whole match.
    regex: Pattern[str]
    confidence: str = "high"


ID_PATTERNS: List[IdPattern] = [
    IdPattern(
        IdType.UNIPROT_ACCESSION,
        re.compile(r"\b([OPQ][0-9][A-Z0-9]{3}[0-9]|[A-NR-Z][0-9](?:[A-Z][A-Z0-9]{2}[0-9]){1,2})\b"),
    ),
    IdPattern(IdType.ENSEMBL_GENE, re.compile(r"\b(ENSG\d{11})\b")),
    IdPattern(IdType.ENSEMBL_TRANSCRIPT, re.compile(r"\b(ENST\d{11})\b")),
    IdPattern(IdType.ENSEMBL_PROTEIN, re.compile(r"\b(ENSP\d{11})\b")),
    # A bare number is only a gene ID when labelled as one.
    IdPattern(
        IdType.NCBI_GENE,
        re.compile(r"\b(?:NCBI\s+Gene(?:\s+ID)?|Entrez\s+Gene(?:\s+ID)?|GeneID)\s*:?\s*(\d+)\b", re.IGNORECASE),
        "medium",
    ),
    # Digit followed by three alphanumerics, at least one of them a letter.
    IdPattern(IdType.PDB, re.compile(r"\b([1-9](?=[A-Z0-9]{0,2}[A-Z])[A-Z0-9]{3})\b")),
    IdPattern(IdType.NCT, re.compile(r"\b(NCT\d{8})\b")),
    IdPattern(IdType.PMID, re.compile(r"\bPMID\s*:?\s*(\d{1,8})\b", re.IGNORECASE)),
    IdPattern(IdType.DOI, re.compile(r"\b(10\.(?!13039/)\d{4,9}/[^\s\"'<>\\]*[^\s\"'<>\\.,;)])")),
    IdPattern(IdType.CHEMBL, re.compile(r"\b(CHEMBL\d+)\b")),
    IdPattern(IdType.DRUGBANK, re.compile(r"\b(DB\d{5})\b")),
    IdPattern(IdType.HGNC, re.compile(r"\b(HGNC:\d+)\b")),
    IdPattern(IdType.ORCID, re.compile(r"\b(\d{4}-\d{4}-\d{4}-\d{3}[\dX])\b")),
    IdPattern(IdType.ROR, re.compile(r"(?:ror\.org/|\bROR\s*:?\s*)(0[a-z0-9]{6}\d{2})\b"), "medium"),
    IdPattern(IdType.CROSSREF_FUNDER, re.compile(r"\b(10\.13039/\d+)\b")),
]


class DetectedId(BaseModel):
    id: str
    type: IdType
    confidence: str
    source: str = "text"


class CrossReferenceHint(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_id: str = Field(..., alias="fromId")
    from_type: IdType = Field(..., alias="fromType")
    related_servers: List[str] = Field(default_factory=list, alias="relatedServers")
    usage_hint: Optional[str] = Field(None, alias="usageHint")
    server_id_formats: Dict[str, str] = Field(default_factory=dict, alias="serverIdFormats")


class IdEnrichment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    detected_ids: List[DetectedId] = Field(default_factory=list, alias="detectedIds")
    cross_references: List[CrossReferenceHint] = Field(default_factory=list, alias="crossReferences")
    summary: str = ""


@dataclass
class CrossReference:
    servers: List[str] = field(default_factory=list)
    server_hints: Dict[str, str] = field(default_factory=dict)


def build_cross_reference_map(capabilities: Mapping[str, IdCapabilities]) -> Dict[str, CrossReference]:
    """Map each accepted identifier type to the servers accepting it, in server order."""
    cross_refs: Dict[str, CrossReference] = {}
    for server, caps in capabilities.items():
        hints = dict(caps.hints)
        for id_type in caps.accepts:
            entry = cross_refs.setdefault(id_type, CrossReference())
            entry.servers.append(server)
            if id_type in hints:
                entry.server_hints[server] = hints[id_type]
    return cross_refs


def _text_of(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return str(value)


def detect_ids(value: Any, patterns: Optional[Iterable[IdPattern]] = None) -> List[DetectedId]:
    """Find identifiers in a string or in the JSON text of any other value."""
    text = _text_of(value)
    detected: List[DetectedId] = []
    seen = set()
    for pattern in ID_PATTERNS if patterns is None else patterns:
        for match in pattern.regex.finditer(text):
            found = match.group(1) if match.re.groups and match.group(1) else match.group(0)
            if (pattern.id_type, found) in seen:
                continue
            seen.add((pattern.id_type, found))
            detected.append(DetectedId(id=found, type=pattern.id_type, confidence=pattern.confidence))
    return detected


class IdEnricher:
    def __init__(
        self,
        capabilities: Optional[Mapping[str, IdCapabilities]] = None,
        patterns: Optional[Iterable[IdPattern]] = None,
    ) -> None:
        self.patterns: List[IdPattern] = list(ID_PATTERNS if patterns is None else patterns)
        self.cross_references: Dict[str, CrossReference] = build_cross_reference_map(capabilities or {})

    def use_servers(self, configs: Iterable[ServerConfig]) -> None:
        """Point cross-references at exactly these servers, keyed by their label."""
        capabilities = {config.label: config.id_capabilities for config in configs if config.id_capabilities}
        self.cross_references = build_cross_reference_map(capabilities)
        logger.debug("ID cross-references now cover %s", sorted(self.cross_references) or "nothing")

    def explain(self, detected: Iterable[DetectedId]) -> Tuple[List[CrossReferenceHint], str]:
        hints: List[CrossReferenceHint] = []
        for item in detected:
            entry = self.cross_references.get(item.type.value)
            if entry is None or not entry.servers:
                continue
            parts = [f"{server}: {entry.server_hints[server]}" for server in entry.servers if server in entry.server_hints]
            hints.append(
                CrossReferenceHint(
                    from_id=item.id,
                    from_type=item.type,
                    related_servers=list(entry.servers),
                    usage_hint=". ".join(parts) if parts else f"Can be used with: {', '.join(entry.servers)}",
                    server_id_formats=dict(entry.server_hints),
                )
            )
        summary = ". ".join(
            f"{hint.from_type.value.replace('_', ' ')} {hint.from_id} can be used with: {', '.join(hint.related_servers)}"
            for hint in hints
        )
        return hints, summary

    def enrich(self, result: Any, tool_name: str) -> Any:
        if not isinstance(result, Mapping):
            return result
        detected = detect_ids(result, self.patterns)
        if not detected:
            return result
        hints, summary = self.explain(detected)
        logger.debug("Detected %d identifier(s) in result of %s", len(detected), tool_name)
        enrichment = IdEnrichment(detected_ids=detected, cross_references=hints, summary=summary)
        return {**result, ENRICHMENT_KEY: enrichment.model_dump(by_alias=True, mode="json")}
