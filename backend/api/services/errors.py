"""Domain errors raised by the birthday messaging services."""


class BirthdayError(Exception):
    """Base class for birthday messaging errors."""


class CustomerNotFoundError(BirthdayError):
    def __init__(self, customer_id: str):
        super().__init__(f"Customer not found: {customer_id}")
        self.customer_id = customer_id


class NoActiveConnectionError(BirthdayError):
    def __init__(self, user_id: str):
        super().__init__("WhatsApp not connected. Please connect your WhatsApp first.")
        self.user_id = user_id


class MissingPhoneError(BirthdayError):
    def __init__(self, customer_id: str):
        super().__init__("Customer does not have a phone number")
        self.customer_id = customer_id


class NoCustomersError(BirthdayError):
    def __init__(self) -> None:
        super().__init__("No customers found")
