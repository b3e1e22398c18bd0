"""
Base LLM Client
---------------
Abstract base class for all LLM providers (Groq, Ollama, etc.)

EXPLANATION:
- This is the contract every provider implements
- The planner only talks to this interface, so tests can pass a fake
  client that returns canned text instead of calling a real model
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List


# =============================================================================
# MESSAGE ROLE ENUM
# =============================================================================

class MessageRole(str, Enum):
    """Roles for chat messages"""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


# =============================================================================
# DATA CLASSES FOR STRUCTURED RESPONSES
# =============================================================================

@dataclass
class LLMMessage:
    """
    A single chat message.

    EXAMPLE:
    message = LLMMessage(role=MessageRole.USER, content="Plan my week.")
    """
    role: MessageRole
    content: str


@dataclass
class LLMResponse:
    """
    Response from LLM.

    FIELDS:
    - content: The generated text
    - model: Which model was used
    - provider: Which provider (groq, ollama)
    - usage: Token counts
    - metadata: Any extra info
    """
    content: str
    model: str
    provider: str
    usage: Dict[str, int] = None
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.usage is None:
            self.usage = {}
        if self.metadata is None:
            self.metadata = {}


# =============================================================================
# BASE LLM CLIENT (ABSTRACT CLASS)
# =============================================================================

class BaseLLMClient(ABC):
    """
    Abstract base class for LLM providers.

    ALL LLM CLIENTS MUST IMPLEMENT:
    - generate() - Single completion
    - chat() - Chat completion
    - is_available() - Check if provider is working

    `json_mode=True` asks the provider to constrain output to JSON where it
    supports that; it is a hint, the caller still validates the text.
    """

    provider_name = "base"

    def __init__(self, model: str, timeout: int = 30):
        """
        ARGS:
        - model: Model name (e.g., "llama-3.3-70b-versatile")
        - timeout: Request timeout in seconds
        """
        self.model = model
        self.timeout = timeout

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        json_mode: bool = False,
        **kwargs
    ) -> LLMResponse:
        """Generate a completion from a single prompt"""

    @abstractmethod
    async def chat(
        self,
        messages: List[LLMMessage],
        max_tokens: int = 1000,
        temperature: float = 0.7,
        json_mode: bool = False,
        **kwargs
    ) -> LLMResponse:
        """
        Chat completion with conversation history.

        EXAMPLE:
        messages = [
            LLMMessage(role=MessageRole.SYSTEM, content="You are a study planner."),
            LLMMessage(role=MessageRole.USER, content="Plan my week."),
        ]
        response = await client.chat(messages)
        """

    @abstractmethod
    async def is_available(self) -> bool:
        """True if provider is reachable and working"""

    def _format_messages(self, messages: List[LLMMessage]) -> List[Dict[str, str]]:
        """
        Convert LLMMessage objects to API format.

        [LLMMessage(role="user", content="Hi")] -> [{"role": "user", "content": "Hi"}]
        """
        return [
            {"role": msg.role.value, "content": msg.content}
            for msg in messages
        ]
