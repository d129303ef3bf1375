from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    broadcasted when the user logs out
    """

    bubble = True


class CartChangedMessage(Message):
    """
    Fired when an item is added from the menu, or a cart line is edited/removed.
    Post at App level when leaving the CartScreen.
    """

    bubble = True


class NewOrderMessage(Message):
    """
    Fired when an order is placed.
    Listened to by the orders screen.
    """

    bubble = True

    def __init__(self, order_id: int) -> None:
        super().__init__()
        self.order_id = order_id


class OrderStatusChangedMessage(Message):
    """
    Fired by staff after an order's status is updated.
    """

    bubble = True

    def __init__(self, order_id: int, status: str) -> None:
        super().__init__()
        self.order_id = order_id
        self.status = status


class MenuChangedMessage(Message):
    """
    Fired when a manager adds or edits a menu item.
    """

    bubble = True


class ModeSwitchedMessage(Message):
    """
    fired whenever switch_mode is called
    must be fired from app level
    """

    bubble = True

    def __init__(self, old_mode: str, new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode
