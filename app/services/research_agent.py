import pydantic
from app.core.errors import TransientUpstreamError
from app.schemas.research import RequestResearchInput, ResearchResult
from app.services.http_service_client import HTTPServiceClient

SYSTEM_PROMPT = """
You are a research agent.

You are responsible for creating detailed research for a given topic.

Search the web for relevant information and use it to create the research.

Provide the citations for the research as a list of URLs.
"""


def user_prompt(input: RequestResearchInput) -> str:
    return f"Generate research according to the following prompt:\n\n{input.prompt}\n"


class ResearchAgent:
    def __init__(self, client: HTTPServiceClient):
        self.client = client

    async def run(self, input: RequestResearchInput) -> ResearchResult:
        out = await self.client.acall("research_agent", "POST", "/v1/research", {
            "system_prompt": SYSTEM_PROMPT,
            "prompt": user_prompt(input),
        }, idempotency_key=input.id)
        try:
            return ResearchResult.model_validate(out.get("data", out))
        except pydantic.ValidationError as e:
            raise TransientUpstreamError("research agent returned an invalid research object",
                                         "BAD_RESPONSE") from e
