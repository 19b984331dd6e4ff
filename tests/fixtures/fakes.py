"""
In-memory stand-ins for the judgment services, source discovery and HTTP.

Each fake records its calls so tests can assert on what the pipeline asked
for without any network or model access.
"""

from typing import Any, Callable, Dict, List, Optional

from citeguard.errors import JudgmentServiceError, SourceDiscoveryError
from citeguard.models import AccuracyCheck, AccuracyVerdict, FixProposal, QuoteExtraction, SourceCandidate


class FakeExtractor:
    model_name = "fake:extractor"

    def __init__(self, quote: Optional[str] = None, fail: bool = False):
        self.quote = quote
        self.fail = fail
        self.calls: List[tuple] = []

    async def extract_quote(self, claim: str, source_text: str) -> QuoteExtraction:
        self.calls.append((claim, source_text))
        if self.fail:
            raise JudgmentServiceError("extractor down")
        quote = self.quote if self.quote is not None else source_text[:120]
        return QuoteExtraction(quote=quote, location="paragraph 1", confidence=0.9)


class FakeChecker:
    """Verdicts picked by a rule over the claim text, ``accurate`` by default."""

    def __init__(self, rule: Optional[Callable[[str, str], AccuracyVerdict]] = None, fail: bool = False):
        self.rule = rule or (lambda claim, evidence: AccuracyVerdict.ACCURATE)
        self.fail = fail
        self.calls: List[tuple] = []

    async def check_accuracy(self, claim: str, evidence: str, source_title: Optional[str] = None) -> AccuracyCheck:
        self.calls.append((claim, evidence, source_title))
        if self.fail:
            raise JudgmentServiceError("checker down")
        verdict = self.rule(claim, evidence)
        score = {
            AccuracyVerdict.ACCURATE: 0.95,
            AccuracyVerdict.MINOR_ISSUES: 0.7,
            AccuracyVerdict.INACCURATE: 0.3,
            AccuracyVerdict.UNSUPPORTED: 0.1,
            AccuracyVerdict.NOT_VERIFIABLE: 0.5,
        }[verdict]
        issues = [] if verdict == AccuracyVerdict.ACCURATE else [f"claim judged {verdict.value}"]
        return AccuracyCheck(verdict=verdict, score=score, issues=issues, difficulty="easy")


class FakeFixer:
    def __init__(self, proposals: Optional[List[FixProposal]] = None, fail: bool = False):
        self.proposals = proposals or []
        self.fail = fail
        self.calls: List[tuple] = []

    async def generate_fixes(self, page_id: str, flagged, page_content: str) -> List[FixProposal]:
        self.calls.append((page_id, list(flagged), page_content))
        if self.fail:
            raise JudgmentServiceError("fixer down")
        return list(self.proposals)


class FakeRewriter:
    def __init__(self, transform: Optional[Callable[[str], str]] = None, fail: bool = False):
        self.transform = transform or (lambda text: text)
        self.fail = fail
        self.calls: List[tuple] = []

    async def rewrite_section(self, section_text: str, evidence, removable) -> str:
        self.calls.append((section_text, dict(evidence), set(removable)))
        if self.fail:
            raise JudgmentServiceError("rewriter down")
        return self.transform(section_text)


class FakeDiscovery:
    def __init__(self, results: Optional[List[SourceCandidate]] = None, fail: bool = False):
        self.results = results or []
        self.fail = fail
        self.queries: List[tuple] = []

    async def search(self, query: str, exclude_domains=()) -> List[SourceCandidate]:
        self.queries.append((query, list(exclude_domains)))
        if self.fail:
            raise SourceDiscoveryError("search down")
        return list(self.results)


class FakeResponse:
    def __init__(self, status: int = 200, body: str = "", content_type: str = "text/html"):
        self.status = status
        self._body = body
        self.headers = {"Content-Type": content_type}

    async def text(self, errors: str = "strict") -> str:
        return self._body

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None


class FakeSession:
    """Mimics ``aiohttp.ClientSession.get`` for a fixed URL-to-response map."""

    def __init__(self, responses: Dict[str, Any]):
        self.responses = responses
        self.requested: List[str] = []

    def get(self, url: str, **kwargs) -> FakeResponse:
        self.requested.append(url)
        response = self.responses[url]
        if isinstance(response, BaseException):
            raise response
        return response

    async def close(self) -> None:
        return None
