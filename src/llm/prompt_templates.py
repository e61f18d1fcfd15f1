"""
Prompt Templates for MedRep

Medical representative system prompt plus the context formatter that turns
ranked chunks into numbered, citation-ready source blocks. When nothing was
retrieved, the formatter emits a degraded-context block instead.
"""

from src.rag.chunks import ChunkOrigin, ScoredChunk

SUGGESTIONS_MARKER = "[SUGGESTED_QUESTIONS]"

MEDICAL_SYSTEM_PROMPT = f"""You are a Digital Medical Representative AI assistant for Indian healthcare professionals.

STRICT RULES - YOU MUST FOLLOW THESE EXACTLY:

1. Prefer information from the SOURCES provided below
2. EVERY factual statement MUST include a citation in format: [Source: Document Name, Page: X].
   - If the data is scraped or from an online reference, cite as: [Source: <site_name>, URL: <url>]
3. You provide FACTUAL INFORMATION ONLY - never provide medical advice or recommendations
4. Be concise and structured in your responses
5. If asked about something outside drug information/reimbursement, politely redirect
6. End your reply with the line {SUGGESTIONS_MARKER} followed by EXACTLY three
   follow-up questions the user could ask next, one per line, each starting with "- "

WHAT YOU CAN HELP WITH:
- Drug approval status and indications (CDSCO)
- Dosage information
- Contraindications and safety warnings
- Side effects and drug interactions
- Ayushman Bharat/PMJAY reimbursement eligibility
- Generic availability

WHAT YOU CANNOT DO:
- Provide medical advice or diagnosis
- Recommend treatments
- Interpret lab results

SOURCES:
"""

# Canonical portals cited when no verified snippet was retrieved
OFFICIAL_PORTALS = [
    ("CDSCO", "https://cdsco.gov.in"),
    ("PvPI / Indian Pharmacopoeia Commission", "https://ipc.gov.in"),
    ("NPPA", "https://nppa.gov.in"),
    ("NHA / PM-JAY", "https://pmjay.gov.in"),
    ("MoHFW", "https://mohfw.gov.in"),
]

DEGRADED_CONTEXT = (
    "No verified document snippets were found for this question.\n"
    "Answer from general medical and regulatory knowledge, and state explicitly "
    "at the start of the answer that it is not based on verified uploaded documents.\n"
    "Cite the relevant official portals using the URL citation form, for example "
    "[Source: CDSCO, URL: https://cdsco.gov.in]:\n"
    + "\n".join(f"- {name}: {url}" for name, url in OFFICIAL_PORTALS)
    + "\n"
)


class ContextFormatter:
    """Builds the SOURCES block appended to the system prompt."""

    def format(self, chunks: list[ScoredChunk]) -> str:
        """Format ranked chunks as numbered source blocks.

        An empty list yields DEGRADED_CONTEXT.
        """
        if not chunks:
            return DEGRADED_CONTEXT
        return "\n".join(
            self._format_block(i, scored) for i, scored in enumerate(chunks, 1)
        )

    @staticmethod
    def _format_block(number: int, scored: ScoredChunk) -> str:
        chunk = scored.chunk
        if chunk.origin == ChunkOrigin.SCRAPED:
            source_info = f"Source: Scraped from {chunk.site_name} ({chunk.url})"
        else:
            source_info = f"Document: {chunk.label}"
            if chunk.origin == ChunkOrigin.API and chunk.url:
                source_info += f"\nURL: {chunk.url}"

        return (
            f"\n[Source {number}]\n"
            f"{source_info}\n"
            f"Source Type: {chunk.origin.value}\n"
            f"Page: {chunk.page}\n"
            f"Content:\n"
            f"{chunk.content}\n"
        )

    def build_system_prompt(self, chunks: list[ScoredChunk]) -> str:
        return MEDICAL_SYSTEM_PROMPT + self.format(chunks)
