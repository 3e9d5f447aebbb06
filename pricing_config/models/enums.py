from enum import Enum


class DataType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    JSON = "json"
    ARRAY = "array"


class OperationType(str, Enum):
    LEASE = "LEASE"
    REFILL = "REFILL"
    SWAP = "SWAP"
    REGISTRATION = "REGISTRATION"
    PENALTY = "PENALTY"
    DEPOSIT = "DEPOSIT"
    GENERAL = "GENERAL"


class CustomerTier(str, Enum):
    REGULAR = "regular"
    BUSINESS = "business"
    PREMIUM = "premium"


class RuleType(str, Enum):
    BASE_PRICE = "base_price"
    DISCOUNT = "discount"
    SURCHARGE = "surcharge"
    CONDITIONAL = "conditional"
    VOLUME_DISCOUNT = "volume_discount"


class ConditionOperator(str, Enum):
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    NOT_IN = "not_in"


class ActionType(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    PERCENTAGE_DISCOUNT = "percentage_discount"
    PERCENTAGE_MARKUP = "percentage_markup"
    SET_FIXED = "set_fixed"


class AuditAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class TaxMode(str, Enum):
    INCLUSIVE = "inclusive"
    EXCLUSIVE = "exclusive"
