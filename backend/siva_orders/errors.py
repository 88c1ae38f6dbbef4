class OrderNotFound(Exception):
    """Unknown order id, or an image slot that is not populated."""

    def __init__(self, message: str = "Order not found"):
        super().__init__(message)
        self.message = message


class StoreError(Exception):
    """The record store call failed for any reason other than not-found."""

    def __init__(self, message: str = "Record store request failed"):
        super().__init__(message)
        self.message = message
