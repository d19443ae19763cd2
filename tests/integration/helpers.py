import json

from compliance_agent.config.settings import AdvisorConfig
from compliance_agent.services.advisor import AnomalyAdvisor
from compliance_agent.services.models import LLMResponse


class ScriptedLLMClient:
    """Returns queued replies in order and records every request."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.requests = []

    def chat(self, model, messages, *, temperature, max_tokens, timeout):
        self.requests.append({"model": model, "messages": messages, "temperature": temperature})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        text = reply if isinstance(reply, str) else json.dumps(reply)
        return LLMResponse(text=text, model=model, temperature=temperature, max_tokens=max_tokens)


def scripted_advisor(*replies):
    client = ScriptedLLMClient(*replies)
    return AnomalyAdvisor(AdvisorConfig(api_key="sk-test"), llm_client=client), client
