"""
Tests for MedRep LLM Integration

Tests for:
- OllamaClient: async chat client with retries, auth header, health checks
- ContextFormatter: numbered source blocks and the degraded context
- ResponseParser: suggested questions and citation parsing
"""

import httpx
import pytest

from src.llm.ollama_client import OllamaClient
from src.llm.prompt_templates import (
    DEGRADED_CONTEXT,
    MEDICAL_SYSTEM_PROMPT,
    ContextFormatter,
)
from src.llm.response_parser import ResponseParser
from src.rag.chunks import Chunk, ChunkOrigin, ScoredChunk

# ============================================
# OllamaClient Tests
# ============================================


def _mock_http(mocker, json_body=None, post_side_effect=None):
    mock_response = mocker.Mock()
    mock_response.status_code = 200
    mock_response.json.return_value = json_body or {}
    mock_response.raise_for_status = mocker.Mock()

    mock_client = mocker.AsyncMock()
    if post_side_effect is not None:
        mock_client.post.side_effect = post_side_effect
    else:
        mock_client.post.return_value = mock_response
    mock_client.get.return_value = mock_response
    mock_client.__aenter__ = mocker.AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = mocker.AsyncMock(return_value=False)

    mocker.patch("httpx.AsyncClient", return_value=mock_client)
    return mock_client


class TestOllamaClientInit:
    @pytest.mark.unit
    def test_trailing_slash_stripped(self):
        client = OllamaClient(base_url="http://localhost:11434/")
        assert client.base_url == "http://localhost:11434"

    @pytest.mark.unit
    def test_credential_status(self):
        assert OllamaClient(model="llama3.1:8b").credential_status == "configured"
        assert OllamaClient(model="").credential_status == "missing"


class TestOllamaClientComplete:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_complete_returns_message_content(self, mocker):
        _mock_http(mocker, {"message": {"role": "assistant", "content": "Answer."}})
        client = OllamaClient(base_url="http://fake:11434")

        assert await client.complete("system", "question") == "Answer."

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_complete_sends_system_and_user_messages(self, mocker):
        mock_client = _mock_http(mocker, {"message": {"content": "ok"}})
        client = OllamaClient(base_url="http://fake:11434", model="llama3.1:8b")

        await client.complete("SYSTEM PROMPT", "Is it approved?")

        url = mock_client.post.call_args.args[0]
        payload = mock_client.post.call_args.kwargs["json"]
        assert url == "http://fake:11434/api/chat"
        assert payload["model"] == "llama3.1:8b"
        assert payload["stream"] is False
        assert payload["messages"] == [
            {"role": "system", "content": "SYSTEM PROMPT"},
            {"role": "user", "content": "Is it approved?"},
        ]
        assert payload["options"]["num_predict"] == client.max_tokens

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_api_key_sent_as_bearer(self, mocker):
        mock_client = _mock_http(mocker, {"message": {"content": "ok"}})
        client = OllamaClient(base_url="http://fake:11434", api_key="secret")

        await client.complete("s", "q")

        headers = mock_client.post.call_args.kwargs["headers"]
        assert headers == {"Authorization": "Bearer secret"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_auth_header_without_key(self, mocker):
        mock_client = _mock_http(mocker, {"message": {"content": "ok"}})
        await OllamaClient(base_url="http://fake:11434", api_key="").complete("s", "q")
        assert mock_client.post.call_args.kwargs["headers"] == {}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_retries_then_returns_empty_string(self, mocker):
        mock_client = _mock_http(
            mocker, post_side_effect=httpx.ConnectError("connection refused")
        )
        sleep = mocker.patch("src.llm.ollama_client.asyncio.sleep")
        client = OllamaClient(base_url="http://fake:11434", max_retries=3)

        assert await client.complete("s", "q") == ""
        assert mock_client.post.call_count == 3
        assert sleep.call_count == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_recovers_after_timeout(self, mocker):
        ok = mocker.Mock()
        ok.json.return_value = {"message": {"content": "second try"}}
        ok.raise_for_status = mocker.Mock()
        _mock_http(mocker, post_side_effect=[httpx.ReadTimeout("slow"), ok])
        mocker.patch("src.llm.ollama_client.asyncio.sleep")

        result = await OllamaClient(base_url="http://fake:11434").complete("s", "q")

        assert result == "second try"


class TestOllamaHealthCheck:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_healthy(self, mocker):
        _mock_http(mocker)
        assert await OllamaClient(base_url="http://fake:11434").health_check() is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unreachable(self, mocker):
        mock_client = _mock_http(mocker)
        mock_client.get.side_effect = httpx.ConnectError("refused")
        assert await OllamaClient(base_url="http://fake:11434").health_check() is False


# ============================================
# ContextFormatter Tests
# ============================================


class TestContextFormatter:
    @pytest.mark.unit
    def test_uploaded_block(self, sample_scored_chunk):
        context = ContextFormatter().format([sample_scored_chunk])

        assert "[Source 1]" in context
        assert "Document: CDSCO Approved Drugs List.pdf" in context
        assert "Source Type: UPLOADED" in context
        assert "Page: 3" in context
        assert sample_scored_chunk.content in context

    @pytest.mark.unit
    def test_scraped_block(self, scraped_scored_chunk):
        context = ContextFormatter().format([scraped_scored_chunk])

        assert (
            "Source: Scraped from cdsco.gov.in (https://cdsco.gov.in/opencms/en/Drugs/)"
            in context
        )
        assert "Source Type: SCRAPED" in context
        assert "Page: unknown" in context

    @pytest.mark.unit
    def test_api_block_shows_url(self):
        chunk = Chunk(
            content="Trial registered",
            origin=ChunkOrigin.API,
            document_name="CTRI record",
            url="https://ctri.nic.in/123",
        )
        context = ContextFormatter().format([ScoredChunk(chunk=chunk, score=1.0)])

        assert "Document: CTRI record" in context
        assert "URL: https://ctri.nic.in/123" in context

    @pytest.mark.unit
    def test_blocks_numbered_in_rank_order(self, sample_scored_chunk, scraped_scored_chunk):
        context = ContextFormatter().format([sample_scored_chunk, scraped_scored_chunk])

        assert context.index("[Source 1]") < context.index("[Source 2]")
        assert context.index("CDSCO Approved") < context.index("Scraped from")

    @pytest.mark.unit
    def test_empty_list_gives_degraded_context(self):
        context = ContextFormatter().format([])

        assert context == DEGRADED_CONTEXT
        assert "No verified document snippets" in context
        for portal in ("cdsco.gov.in", "pmjay.gov.in", "nppa.gov.in", "mohfw.gov.in"):
            assert portal in context

    @pytest.mark.unit
    def test_system_prompt_contract(self, sample_scored_chunk):
        prompt = ContextFormatter().build_system_prompt([sample_scored_chunk])

        assert prompt.startswith(MEDICAL_SYSTEM_PROMPT)
        assert "[Source: Document Name, Page: X]" in prompt
        assert "[SUGGESTED_QUESTIONS]" in prompt
        assert "never provide medical advice" in prompt


# ============================================
# ResponseParser Tests
# ============================================


class TestResponseParserSuggestions:
    @pytest.mark.unit
    def test_splits_answer_and_suggestions(self, sample_llm_answer):
        parsed = ResponseParser().parse(sample_llm_answer)

        assert parsed.answer.startswith("Paracetamol is approved")
        assert "[SUGGESTED_QUESTIONS]" not in parsed.answer
        assert parsed.suggestions == [
            "What is the maximum daily dose of paracetamol?",
            "Is paracetamol covered under PM-JAY?",
            "What are the hepatotoxicity warnings for paracetamol?",
        ]

    @pytest.mark.unit
    def test_missing_marker_gives_no_suggestions(self):
        parsed = ResponseParser().parse("Just an answer.")
        assert parsed.answer == "Just an answer."
        assert parsed.suggestions == []

    @pytest.mark.unit
    def test_numbered_and_bold_marker(self):
        raw = "Answer.\n**[SUGGESTED_QUESTIONS]**:\n1. One?\n2) Two?\n* Three?\n- Four?"
        parsed = ResponseParser().parse(raw)

        assert parsed.answer == "Answer."
        assert parsed.suggestions == ["One?", "Two?", "Three?"]

    @pytest.mark.unit
    def test_empty_text(self):
        parsed = ResponseParser().parse("")
        assert parsed.answer == ""
        assert parsed.suggestions == []

    @pytest.mark.unit
    def test_to_dict(self, sample_llm_answer):
        data = ResponseParser().parse(sample_llm_answer).to_dict()
        assert set(data) == {"answer", "suggestions"}


class TestResponseParserCitations:
    @pytest.mark.unit
    def test_extracts_page_and_url_citations(self):
        text = (
            "Approved [Source: Drugs List.pdf, Page: 3]. Price capped "
            "[Source: Scraped from nppa.gov.in, URL: https://nppa.gov.in/x]."
        )
        citations = ResponseParser().extract_citations(text)

        assert citations[0].source == "Drugs List.pdf"
        assert citations[0].page == "3"
        assert citations[1].source == "Scraped from nppa.gov.in"
        assert citations[1].url == "https://nppa.gov.in/x"

    @pytest.mark.unit
    def test_known_sources_are_matched(self, sample_llm_answer):
        parsed = ResponseParser().parse(
            sample_llm_answer, known_sources=["CDSCO Approved Drugs List.pdf"]
        )
        assert len(parsed.citations) == 1
        assert parsed.unmatched_citations == []

    @pytest.mark.unit
    def test_unknown_source_is_flagged(self):
        parsed = ResponseParser().parse(
            "Covered [Source: Hospital Brochure, Page: 1].",
            known_sources=["PMJAY Package List.pdf"],
        )
        assert [c.source for c in parsed.unmatched_citations] == ["Hospital Brochure"]

    @pytest.mark.unit
    def test_scraped_prefix_ignored_when_matching(self):
        parsed = ResponseParser().parse(
            "[Source: Scraped from cdsco.gov.in, URL: https://cdsco.gov.in/a]",
            known_sources=["cdsco.gov.in"],
        )
        assert parsed.unmatched_citations == []

    @pytest.mark.unit
    def test_no_known_sources_flags_nothing(self):
        parsed = ResponseParser().parse("[Source: Anything, Page: 2]")
        assert parsed.unmatched_citations == []
