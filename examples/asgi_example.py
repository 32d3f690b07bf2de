"""
Example: Serving a resthandler dispatcher through ASGI.

The resulting ``app`` works with any ASGI-compatible server.

Run with:
    uvicorn examples.asgi_example:app --reload
"""

import logging

from pydantic import BaseModel, ValidationError

from resthandler import create, create_asgi_app

logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


class Item(BaseModel):
    """Item model for demonstration."""
    name: str
    price: float
    description: str = ""


ITEMS = {"1": Item(name="Fake item", price=3.14, description="Pie is delicious")}


def require_token(rest):
    """Reject requests without a bearer token."""
    if not rest.req.headers.get("authorization", "").startswith("Bearer "):
        rest.error(401, "Unauthorized")
        return
    rest.next()


def validate_item(rest):
    """Parse and validate the JSON body before the handler runs."""
    def validated(err, body):
        if err is not None:
            rest.error(400, str(err))
            return
        try:
            rest.state.item = Item.model_validate(body)
        except ValidationError as e:
            rest.error(422, e.errors(include_url=False))
            return
        rest.next()

    rest.get_parsed_body(validated)


def list_items(rest):
    rest.send({item_id: item.model_dump() for item_id, item in ITEMS.items()})


def get_item(rest):
    item = ITEMS.get(rest.params["itemId"])
    if item is None:
        rest.error(404, f"No item {rest.params['itemId']}")
        return
    rest.send(item.model_dump())


def create_item(rest):
    item_id = str(len(ITEMS) + 1)
    ITEMS[item_id] = rest.state.item
    rest.status(201).send({"id": item_id, "item": rest.state.item.model_dump()})


handler = create({
    "routes": [
        {"path": "/items", "method": "GET", "handler": list_items},
        {"path": "/items/:itemId", "method": "GET", "handler": get_item},
        {"path": "/items", "method": "POST", "before": validate_item, "handler": create_item},
    ]
})
handler.before(require_token)

# Create the ASGI application - this is what the ASGI server will use
app = create_asgi_app(handler)
