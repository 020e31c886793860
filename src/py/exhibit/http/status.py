from http import HTTPStatus

# Reason phrases by status code, as sent in the response status line.
HTTP_STATUS: dict[int, str] = {_.value: _.phrase for _ in HTTPStatus}

# Statuses for which a response must not carry a body.
HTTP_NO_BODY: frozenset[int] = frozenset((204, 304))

# EOF
