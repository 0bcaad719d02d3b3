"""Failures raised by the collaborator adapters.

The orchestrator catches these where it calls the collaborator and turns them
into a logged, boolean outcome. Only DirectoryUnavailable during batch
enumeration is allowed to reach an HTTP caller.
"""


class SurveyBotError(Exception):
    """Base class for every collaborator failure."""


class TransportSendFailure(SurveyBotError):
    """An outbound chat message was not accepted by the gateway."""


class ContactNotFound(SurveyBotError):
    """No client record matches the contact identifier."""


class CatalogUnavailable(SurveyBotError):
    """The survey catalog could not be reached or answered garbage."""


class NoQuestionsDefined(SurveyBotError):
    """The catalog answered, but the survey has no questions."""


class PersistenceFailure(SurveyBotError):
    """An answer or status write to the relational store failed."""


class DirectoryUnavailable(SurveyBotError):
    """Client records could not be read."""
