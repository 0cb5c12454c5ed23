from sharehome.errors import ShareError
from sharehome.protocol.http.messages import HTTPResponse


class Outcome:
    """Result of a route handler. The router moves on to the next route only on Declined."""
    handled = False
    declined = False
    failed = False


class Handled(Outcome):
    handled = True

    def __init__(self, response:HTTPResponse):
        self.response = response

    def __repr__(self):
        return 'Handled(%s)' % self.response


class Declined(Outcome):
    declined = True

    def __repr__(self):
        return 'Declined()'


class Failed(Outcome):
    failed = True

    def __init__(self, error:ShareError):
        self.error = error

    def to_response(self) -> HTTPResponse:
        return HTTPResponse.text(self.error.status_code, self.error.message)

    def __repr__(self):
        return 'Failed(%s, %r)' % (self.error.status_code, self.error.message)
