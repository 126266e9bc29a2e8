"""
ダミーデータ生成 — ユーザー・注文・商品エンティティの生成

Faker でランダムだが型の整ったエンティティを生成する。
エンティティは Pydantic v2 モデルとして返し、model_dump() の結果が
ストアに保存されるドキュメント形式となる。

注文の totalAmount は常に items の price * quantity の総和（items の順に加算）と一致する。
"""

from __future__ import annotations

import string
from typing import Optional

from faker import Faker
from pydantic import BaseModel, Field, model_validator

_ALPHANUMERIC = string.ascii_letters + string.digits

_CATEGORIES = (
    "Books", "Clothing", "Electronics", "Garden", "Grocery",
    "Health", "Home", "Music", "Sports", "Toys",
)

_MATERIALS = ("Cotton", "Granite", "Plastic", "Rubber", "Steel", "Wooden")


# ---------------------------------------------------------------------------
# エンティティモデル
# ---------------------------------------------------------------------------

class User(BaseModel):
    """生成されたテストユーザー。"""

    firstName: str = Field(..., min_length=1)
    lastName: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zipCode: str = Field(..., min_length=1)


class OrderItem(BaseModel):
    """注文明細 1 行。"""

    productId: str
    productName: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)


def order_total(items: list[OrderItem]) -> float:
    """明細の price * quantity を先頭から順に加算した合計を返す。"""
    total = 0.0
    for item in items:
        total += item.price * item.quantity
    return total


class Order(BaseModel):
    """生成されたテスト注文。totalAmount は明細合計と一致しなければならない。"""

    orderId: str
    items: list[OrderItem] = Field(..., min_length=1, max_length=5)
    totalAmount: float

    @model_validator(mode="after")
    def _check_total(self) -> "Order":
        if self.totalAmount != order_total(self.items):
            raise ValueError("totalAmount が明細合計と一致しません")
        return self


class Product(BaseModel):
    """生成されたテスト商品。"""

    productId: str
    name: str
    description: str
    price: float = Field(..., ge=0)
    category: str
    brand: str


# ---------------------------------------------------------------------------
# DataGenerator 本体
# ---------------------------------------------------------------------------

class DataGenerator:
    """Faker を使ってエンティティとプリミティブ値を生成するクラス。

    保存処理は持たない。ストアへの書き込みは ScenarioDataStore が行う。
    """

    def __init__(self, locale: str = "en_US", seed: Optional[int] = None) -> None:
        """生成器を初期化する。

        Args:
            locale: Faker のロケール
            seed: シード値（指定すると生成結果が再現可能になる）
        """
        self._faker = Faker(locale)
        if seed is not None:
            self._faker.seed_instance(seed)

    @property
    def faker(self) -> Faker:
        return self._faker

    def _price(self) -> float:
        # 小数点以下 2 桁の価格（0.01〜1000.00）
        return self._faker.random_int(min=1, max=100_000) / 100

    def _product_name(self) -> str:
        return (
            f"{self._faker.color_name()} "
            f"{self._faker.random_element(_MATERIALS)} "
            f"{self._faker.word().capitalize()}"
        )

    def user(self) -> User:
        fake = self._faker
        return User(
            firstName=fake.first_name(),
            lastName=fake.last_name(),
            email=fake.email(),
            phone=fake.phone_number(),
            address=fake.street_address(),
            city=fake.city(),
            state=fake.administrative_unit(),
            zipCode=fake.postcode(),
        )

    def order(self) -> Order:
        fake = self._faker
        items = [
            OrderItem(
                productId=fake.uuid4(),
                productName=self._product_name(),
                quantity=fake.random_int(min=1, max=10),
                price=self._price(),
            )
            for _ in range(fake.random_int(min=1, max=5))
        ]
        return Order(orderId=fake.uuid4(), items=items, totalAmount=order_total(items))

    def product(self) -> Product:
        fake = self._faker
        return Product(
            productId=fake.uuid4(),
            name=self._product_name(),
            description=fake.sentence(nb_words=12),
            price=self._price(),
            category=fake.random_element(_CATEGORIES),
            brand=fake.company(),
        )

    def string(self, prefix: str = "test", length: int = 8) -> str:
        """"<prefix>_<英数字 length 文字>" 形式の文字列を返す。"""
        return f"{prefix}_{self._faker.lexify('?' * length, letters=_ALPHANUMERIC)}"

    def number(self, min_value: int = 1, max_value: int = 100) -> int:
        """min_value 以上 max_value 以下の整数を返す。"""
        if min_value > max_value:
            raise ValueError(f"min_value ({min_value}) は max_value ({max_value}) 以下でなければなりません")
        return self._faker.random_int(min=min_value, max=max_value)
