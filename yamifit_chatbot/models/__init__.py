# yamifit_chatbot/models/__init__.py

from yamifit_chatbot.database import Base

from .chatbot_message import ChatbotMessage, UTCDateTime
