class SignalingError(Exception):
    """Base class for signaling protocol and negotiation failures."""


class RedundantIdentity(SignalingError):
    def __init__(self, url: str):
        super().__init__(f"redundant identity assignment: {url}")
        self.url = url


class MissingIdentity(SignalingError):
    def __init__(self):
        super().__init__("relay attempted before identity was assigned")


class EngineError(SignalingError):
    """The RTC engine rejected an SDP or candidate for one peer."""


class UnexpectedMessage(SignalingError):
    def __init__(self, message):
        super().__init__(f"unexpected message: {message!r}")
        self.message = message
