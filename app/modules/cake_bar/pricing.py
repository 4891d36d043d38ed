"""
Cálculo de precio de órdenes del Cake Bar.

total = precio_base * multiplicador_tamaño + Σ(precio_opción * cantidad)

Solo los toppings se cobran por cantidad; el resto de opciones cuenta una vez.
Las opciones desconocidas no suman. Funciones puras, sin acceso a base de datos.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping

from app.modules.cake_bar.models import CakeBarOptionType

CENTS = Decimal("0.01")

# Multiplicador de precio por tamaño (personas)
SIZE_MULTIPLIERS: Dict[str, Decimal] = {
    "10": Decimal("1.0"),
    "20": Decimal("1.8"),
    "30": Decimal("2.5"),
}


@dataclass
class CustomizationLine:
    """Opción elegida con su precio calculado"""
    option_id: Any
    option_type: CakeBarOptionType
    option_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


@dataclass
class PriceBreakdown:
    base_price: Decimal
    multiplier: Decimal
    sized_price: Decimal
    addons_total: Decimal
    total: Decimal
    lines: List[CustomizationLine] = field(default_factory=list)


def size_multiplier(size: Any) -> Decimal:
    """Multiplicador para el tamaño; ValueError si el tamaño no existe"""
    key = str(size)
    if key not in SIZE_MULTIPLIERS:
        raise ValueError(f"Tamaño inválido: {size}. Use 10, 20 o 30")
    return SIZE_MULTIPLIERS[key]


def _selection_pairs(selections: Iterable[Any]):
    for selection in selections:
        if isinstance(selection, Mapping):
            yield selection.get("option_id"), selection.get("quantity", 1)
        else:
            yield selection.option_id, getattr(selection, "quantity", 1)


def validate_selections(selections: Iterable[Any], options: Mapping[Any, Any]) -> None:
    """
    Una sola opción por tipo, salvo en tipos cuyas opciones permiten
    selección múltiple. Lanza ValueError al violarse.
    """
    single_choice: Dict[CakeBarOptionType, set] = {}
    for option_id, _ in _selection_pairs(selections):
        option = options.get(option_id)
        if option is None or option.allow_multiple:
            continue
        chosen = single_choice.setdefault(CakeBarOptionType(option.option_type), set())
        chosen.add(option_id)
        if len(chosen) > 1:
            raise ValueError(
                f"Solo se permite una opción de tipo {CakeBarOptionType(option.option_type).value}"
            )


def calculate_order_price(
    base_price: Any,
    size: Any,
    selections: Iterable[Any],
    options: Mapping[Any, Any]
) -> PriceBreakdown:
    """
    Calcula el precio total de una orden.

    Args:
        base_price: Precio del producto para 10 personas
        size: "10", "20" o "30"
        selections: Elementos con option_id y quantity (objetos o dicts)
        options: Opciones disponibles indexadas por id

    Returns:
        PriceBreakdown con el total y las líneas de personalización
    """
    multiplier = size_multiplier(size)
    base = Decimal(str(base_price))
    sized_price = (base * multiplier).quantize(CENTS)

    lines: List[CustomizationLine] = []
    addons_total = Decimal("0")
    for option_id, quantity in _selection_pairs(selections):
        quantity = 1 if quantity is None else int(quantity)
        if quantity < 0:
            raise ValueError("La cantidad no puede ser negativa")

        option = options.get(option_id)
        if option is None:
            continue

        option_type = CakeBarOptionType(option.option_type)
        unit_price = Decimal(str(option.price_add or 0))
        charged = quantity if option_type == CakeBarOptionType.TOPPING else 1
        line_total = (unit_price * charged).quantize(CENTS)

        addons_total += line_total
        lines.append(CustomizationLine(
            option_id=option_id,
            option_type=option_type,
            option_name=option.name,
            quantity=quantity,
            unit_price=unit_price,
            total_price=line_total
        ))

    return PriceBreakdown(
        base_price=base,
        multiplier=multiplier,
        sized_price=sized_price,
        addons_total=addons_total.quantize(CENTS),
        total=(sized_price + addons_total).quantize(CENTS),
        lines=lines
    )
