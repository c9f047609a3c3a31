"""
Credit pricing plans.
"""
from dataclasses import dataclass, field


@dataclass(frozen=True)
class PricingPlan:
    id: str
    name: str
    price: float  # dollars
    price_in_cents: int
    credits: int
    description: str
    features: list[str] = field(default_factory=list)
    highlighted: bool = False

    @property
    def is_free(self) -> bool:
        return self.price_in_cents == 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "priceInCents": self.price_in_cents,
            "credits": self.credits,
            "description": self.description,
            "features": list(self.features),
            "highlighted": self.highlighted,
        }


PLANS: list[PricingPlan] = [
    PricingPlan(
        id="free",
        name="Free",
        price=0,
        price_in_cents=0,
        credits=5,
        description="Try it out with 5 free generations",
        features=[
            "5 image generations",
            "All artistic styles",
            "Standard resolution",
            "Reference image support",
        ],
    ),
    PricingPlan(
        id="starter",
        name="Starter",
        price=9.99,
        price_in_cents=999,
        credits=100,
        description="Perfect for casual creators",
        features=[
            "100 image generations",
            "All artistic styles",
            "High resolution output",
            "Reference image support",
            "Priority generation queue",
        ],
    ),
    PricingPlan(
        id="pro",
        name="Pro",
        price=29.99,
        price_in_cents=2999,
        credits=500,
        description="Best value for power users",
        features=[
            "500 image generations",
            "All artistic styles",
            "High resolution output",
            "Reference image support",
            "Priority generation queue",
            "Early access to new features",
        ],
        highlighted=True,
    ),
]


def get_plan_by_id(plan_id: str) -> PricingPlan | None:
    return next((plan for plan in PLANS if plan.id == plan_id), None)
