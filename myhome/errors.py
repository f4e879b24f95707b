"""Exceptions raised by repositories and services."""


class DuplicateRecordError(ValueError):
    """A record with the same unique key already exists."""

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} '{key}' already exists")


class UserNotFoundError(LookupError):
    """No user is registered with the given email."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"User with email '{email}' not found")


class CredentialsIncorrectError(ValueError):
    """The password does not match the stored hash."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Credentials are incorrect for user '{user_id}'")


class AccessDeniedError(PermissionError):
    """The caller may not act on a record of this community."""

    def __init__(self, user_id: str, community_id: str):
        self.user_id = user_id
        self.community_id = community_id
        super().__init__(f"User '{user_id}' is not an admin of community '{community_id}'")


class BookingConflictError(ValueError):
    """The requested span overlaps an existing booking of the amenity."""

    def __init__(self, amenity_id: str, booking_id: str):
        self.amenity_id = amenity_id
        self.booking_id = booking_id
        super().__init__(f"Amenity '{amenity_id}' is already booked by '{booking_id}'")
