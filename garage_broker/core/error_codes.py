class ErrorCode:
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_STATUS = "INVALID_STATUS"
    INVALID_COORDINATES = "INVALID_COORDINATES"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"

    NOT_FOUND = "NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    CAR_NOT_FOUND = "CAR_NOT_FOUND"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    FAVORITE_NOT_FOUND = "FAVORITE_NOT_FOUND"
    GARAGE_NOT_FOUND = "GARAGE_NOT_FOUND"
    SERVICE_NOT_FOUND = "SERVICE_NOT_FOUND"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"
    SUBCATEGORY_NOT_FOUND = "SUBCATEGORY_NOT_FOUND"
    GARAGE_UNAVAILABLE = "GARAGE_UNAVAILABLE"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    SLOT_CONFLICT = "SLOT_CONFLICT"
    FAVORITE_EXISTS = "FAVORITE_EXISTS"

    INTERNAL_ERROR = "INTERNAL_ERROR"
