"""Record payloads returned by the inventory list endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Product(BaseModel):
    """Catalog product (populated references use the same shape)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    object_id: str = Field(alias="_id")
    codigo: str | None = Field(default=None, alias="id")
    nome: str = ""
    tipo: str | None = None
    categoria: str | None = None
    subcategoria: str | None = None

    @property
    def identity(self) -> str:
        return self.object_id


ProductRef = Product | str | None


def reference_id(ref: ProductRef) -> str | None:
    """Object id of a product reference, populated or not."""
    if isinstance(ref, Product):
        return ref.object_id
    return ref or None


class StockRecord(BaseModel):
    """Quantity of one product held at one location."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    object_id: str | None = Field(default=None, alias="_id")
    produto: ProductRef = None
    local: str = ""
    quantidade: int = 0

    @property
    def product_id(self) -> str | None:
        return reference_id(self.produto)

    @property
    def identity(self) -> str:
        """Stable identity: product + location (unique per backend index)."""
        return f"{self.product_id}@{self.local}"


class SaleRecord(BaseModel):
    """Registered sale."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    object_id: str = Field(alias="_id")
    produto: ProductRef = None
    quantidade: int = 0
    valor_total: float = Field(default=0.0, alias="valorTotal")
    local: str | None = None
    data_venda: datetime | None = Field(default=None, alias="dataVenda")

    @property
    def product_id(self) -> str | None:
        return reference_id(self.produto)

    @property
    def identity(self) -> str:
        return self.object_id


class MovementRecord(BaseModel):
    """Stock movement (entrada, saida, transferencia, venda, ...)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    object_id: str = Field(alias="_id")
    tipo: str
    produto: ProductRef = None
    quantidade: int = 0
    local_origem: str | None = Field(default=None, alias="localOrigem")
    local_destino: str | None = Field(default=None, alias="localDestino")
    data: datetime | None = None
    observacao: str | None = None

    @property
    def product_id(self) -> str | None:
        return reference_id(self.produto)

    @property
    def identity(self) -> str:
        return self.object_id


__all__ = [
    "MovementRecord",
    "Product",
    "ProductRef",
    "SaleRecord",
    "StockRecord",
    "reference_id",
]
