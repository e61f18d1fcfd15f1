from src.pipelines.chat import ChatOrchestrator, ChatResponse, Source

__all__ = ["ChatOrchestrator", "ChatResponse", "Source"]
