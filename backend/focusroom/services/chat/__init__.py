from .relay import ChatError, build_chat_message

__all__ = ['ChatError', 'build_chat_message']
