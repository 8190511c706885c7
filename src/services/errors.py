"""
Erros do pipeline de flashcards.

Cada erro carrega a mensagem que pode ser mostrada ao usuário; o texto cru
do provedor fica apenas nos logs.
"""
from typing import Optional

import groq


class FlashcardError(Exception):
    kind = "Unknown"
    status_code = 500
    retryable = False
    default_message = "Something went wrong. Please try again."

    def __init__(self, user_message: Optional[str] = None, detail: Optional[str] = None):
        self.user_message = user_message or self.default_message
        # texto técnico (ex.: erro cru do provedor), nunca enviado ao cliente
        self.detail = detail
        super().__init__(self.user_message)


# --- Serviço de completion ---------------------------------------------

class InvalidCredentials(FlashcardError):
    kind = "InvalidCredentials"
    status_code = 502
    default_message = "Invalid API key. Please configure a new key for the AI service."


class QuotaExceeded(FlashcardError):
    kind = "QuotaExceeded"
    status_code = 429
    retryable = True
    default_message = "API quota exceeded. Please try again later."


class ModelUnavailable(FlashcardError):
    kind = "ModelUnavailable"
    status_code = 502
    default_message = "Model not available. Check the configured model for the AI service."


class MalformedResponse(FlashcardError):
    kind = "MalformedResponse"
    status_code = 502
    retryable = True
    default_message = "AI returned invalid format. Please try again."


class UnknownCompletionError(FlashcardError):
    kind = "Unknown"
    status_code = 502
    retryable = True
    default_message = "Failed to reach the AI service. Please try again."


# --- Decks / import ----------------------------------------------------

class DeckNotFound(FlashcardError):
    kind = "DeckNotFound"
    status_code = 404
    default_message = "Deck not found. Check the share code and try again."


class InvalidShareCode(DeckNotFound):
    kind = "InvalidShareCode"
    status_code = 400
    default_message = "Share codes look like FC-XXXXXXXX."


class AlreadyImported(FlashcardError):
    kind = "AlreadyImported"
    status_code = 409
    default_message = "You have already imported this deck."


class PermissionDenied(FlashcardError):
    kind = "PermissionDenied"
    status_code = 403
    default_message = "You do not have access to this resource."


class UnsupportedDocument(FlashcardError):
    kind = "UnsupportedDocument"
    status_code = 415
    default_message = "PDF and DOCX files are not supported. Please convert the document to plain text (.txt) first."


# --- Sessões de estudo -------------------------------------------------

class SessionNotFound(FlashcardError):
    kind = "SessionNotFound"
    status_code = 404
    default_message = "Study session not found or already closed."


class InvalidSessionState(FlashcardError):
    kind = "InvalidSessionState"
    status_code = 409
    default_message = "That action is not available right now."


class SessionPersistError(FlashcardError):
    kind = "SessionPersistError"
    status_code = 503
    retryable = True
    default_message = "Could not save your study results. Please try again."


# --- Classificação de erros do provedor ---------------------------------

# Trechos do texto de erro do provedor -> tipo de erro
_ERROR_PHRASES = [
    (InvalidCredentials, ("api key", "api_key", "invalid_api_key", "401", "unauthorized")),
    (QuotaExceeded, ("quota", "resource_exhausted", "rate limit", "rate_limit", "429")),
    (ModelUnavailable, ("404", "not found", "model_not_found", "decommissioned")),
    (MalformedResponse, ("json",)),
]


def classify_completion_error(error: Exception) -> FlashcardError:
    if isinstance(error, FlashcardError):
        return error
    if isinstance(error, groq.AuthenticationError):
        return InvalidCredentials(detail=str(error))
    if isinstance(error, groq.RateLimitError):
        return QuotaExceeded(detail=str(error))
    if isinstance(error, groq.NotFoundError):
        return ModelUnavailable(detail=str(error))

    message = str(error).lower()
    for error_cls, phrases in _ERROR_PHRASES:
        if any(phrase in message for phrase in phrases):
            return error_cls(detail=str(error))
    return UnknownCompletionError(detail=str(error))
