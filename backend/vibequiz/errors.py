"""Error taxonomy shared by the store backends, services and HTTP layer.

Every error carries a user-visible ``message`` and the HTTP ``status_code``
the API answers with. Nothing here is retried automatically; retry policy
belongs to the caller.
"""


class QuizError(Exception):
    status_code = 500
    default_message = 'Something went wrong, please try again.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.message}


class NotFound(QuizError):
    status_code = 404
    default_message = 'Not found.'


class SessionNotFound(NotFound):
    default_message = 'Game not found. Check your code and try again.'


class QuizNotFound(NotFound):
    default_message = 'Quiz not found.'


class PlayerNotFound(NotFound):
    default_message = 'Player not found in this game.'


class Unconfigured(QuizError):
    status_code = 503
    default_message = 'The game backend is not configured.'


class ValidationFailure(QuizError):
    status_code = 400
    default_message = 'Invalid input.'


class InvalidTransition(ValidationFailure):
    default_message = 'That action is not available right now.'


class SubmissionClosed(ValidationFailure):
    default_message = 'Answers are not being accepted right now.'


class GameAlreadyEnded(ValidationFailure):
    status_code = 409
    default_message = 'This game has already ended.'


class WriteFailure(QuizError):
    status_code = 502
    default_message = 'Failed to save, please try again.'
