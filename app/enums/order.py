from enum import Enum


class AvailabilityStatus(str, Enum):
    in_stock = "in_stock"
    low_stock = "low_stock"
    out_of_stock = "out_of_stock"


class CheckoutMode(str, Enum):
    cart = "cart"
    single = "single"


class PaymentMethod(str, Enum):
    razorpay = "razorpay"
    cod = "cod"


class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"


class OrderStatus(str, Enum):
    pending = "pending"


class DiscountType(str, Enum):
    percentage = "percentage"
    fixed = "fixed"
