from pydantic import BaseModel, Field


class AddCartItemRequest(BaseModel):
    product_id: int = Field(gt=0)
    quantity: int = Field(default=1, ge=1)
    variant_ids: list[int] = Field(default_factory=list)


class UpdateCartItemRequest(BaseModel):
    quantity: int = Field(ge=1)
