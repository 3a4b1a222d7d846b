"""Failures raised by timer operations.

Every error carries a ``message`` that is safe to send back to the
requesting client. Internal failures (storage, unexpected) never expose
their cause in that message.
"""


class TimerError(Exception):
    message = 'Timer operation failed'

    def __init__(self, message=None):
        if message:
            self.message = message
        super().__init__(self.message)


class RoomNotFound(TimerError):
    message = 'Room not found'


class NotHost(TimerError):
    message = 'Only host can control timer'


class InvalidMode(TimerError):
    message = 'Invalid timer mode'


class StorageFailure(TimerError):
    message = 'Operation failed'


class UnexpectedFailure(TimerError):
    message = 'Operation failed'
