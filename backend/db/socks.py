from sqlalchemy import Column, Integer, String, UniqueConstraint

from .database import Base


class Sock(Base):
    """One stock line: a (color, cotton percentage) kind and how many pairs are on hand."""
    __tablename__ = "socks"
    __table_args__ = (
        UniqueConstraint("color", "cotton_percentage", name="ux_socks_color_cotton"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    color = Column(String, nullable=False, index=True)
    cotton_percentage = Column(Integer, nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "color": self.color,
            "cottonPercentage": self.cotton_percentage,
            "quantity": self.quantity,
        }

    def __repr__(self) -> str:
        return f"Sock(id={self.id}, color={self.color!r}, cotton_percentage={self.cotton_percentage}, quantity={self.quantity})"
