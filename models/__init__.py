from models.users import User
from models.categories import Category
from models.products import Product
from models.product_variants import ProductVariant
from models.carts import Cart
from models.cart_items import CartItem
from models.orders import Order, OrderStatus, PaymentMethod
from models.order_items import OrderItem
from models.payments import Payment, PaymentStatus
from models.notifications import Notification
from models.inventory_changes import InventoryChange

__all__ = [
    "User", "Category", "Product", "ProductVariant", "Cart", "CartItem",
    "Order", "OrderStatus", "PaymentMethod", "OrderItem", "Payment", "PaymentStatus",
    "Notification", "InventoryChange",
]
