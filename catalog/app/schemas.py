from typing import Any, List
from pydantic import BaseModel, Field
from pydantic import ConfigDict

# Request bodies below only document the endpoints; incoming payloads are
# checked by the rule chains in validation.py.

class ProductCreate(BaseModel):
    name: str = Field(min_length=1, examples=["Monitor 32 Pulgadas"])
    price: float = Field(gt=0, examples=[300])

class ProductUpdate(ProductCreate):
    availability: bool = Field(examples=[True])

class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: float
    availability: bool

class ProductResponse(BaseModel):
    data: ProductOut

class ProductListResponse(BaseModel):
    data: List[ProductOut]

class MessageResponse(BaseModel):
    data: str

class ErrorResponse(BaseModel):
    error: str

class FieldError(BaseModel):
    type: str = "field"
    value: Any = None
    msg: str
    path: str
    location: str

class ValidationErrorResponse(BaseModel):
    errors: List[FieldError]
