"""Chat-turn state definition.

The state is the shared data structure that flows through every node in the
graph. One state lives for exactly one inbound message; everything that must
outlive the turn is written to the user store by the ``commit`` node.
"""

from typing import Dict, List, Optional, TypedDict

from memory.schema import LongTermMemory, MemoryItem, User


class ChatState(TypedDict, total=False):
    """Shared state for the chat graph.

    Attributes:
        username: Name of the user who sent the message.
        message: The user's utterance.
        mood: Optional mood; ``roast`` switches to the sarcastic templates.
        user: User document as loaded at the start of the turn.
        extracted_memories: Candidates the rule table found in the message.
        long_term_memory: The user's long-term memory after merge and lifecycle.
        relevant_memories: Stored items mentioned by the message, newest first.
        memory_context: Rendered relevant memories for the prompt.
        prompt: The prompt of the current generation attempt.
        attempts: Generation attempts made so far.
        blocked: Whether the last attempt was rejected by moderation.
        response: The reply returned to the caller.
        fell_back: Whether the reply is the fixed apology.
    """

    username: str
    message: str
    mood: Optional[str]
    user: User
    extracted_memories: Dict[str, List[MemoryItem]]
    long_term_memory: LongTermMemory
    relevant_memories: Dict[str, List[MemoryItem]]
    memory_context: str
    prompt: str
    attempts: int
    blocked: bool
    response: str
    fell_back: bool
