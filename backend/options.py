"""
Pilihan tetap vs isian bebas ("Lainnya").

Setiap field jenis material, nama peralatan, jenis alat berat dan jenis
sedimen disimpan sebagai salah satu dari tiga keadaan:

- Unset      : belum diisi (ditampilkan sebagai placeholder)
- Selected   : salah satu nilai dari daftar pilihan
- Override   : teks bebas yang diketik pengguna

Nilai yang disimpan ke database dan dicetak selalu teks aslinya, tidak
pernah penanda "custom".
"""
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator

from vocab import (
    ALAT_BERAT_OPTIONS,
    MATERIAL_DEFAULT_UNITS,
    MATERIAL_OPTIONS,
    PERALATAN_OPTIONS,
    SEDIMEN_OPTIONS,
)


class OptionFamily(str, Enum):
    PERALATAN = "peralatan"
    ALAT_BERAT = "alat_berat"
    MATERIAL = "material"
    SEDIMEN = "sedimen"


VOCABULARY = {
    OptionFamily.PERALATAN: PERALATAN_OPTIONS,
    OptionFamily.ALAT_BERAT: ALAT_BERAT_OPTIONS,
    OptionFamily.MATERIAL: MATERIAL_OPTIONS,
    OptionFamily.SEDIMEN: SEDIMEN_OPTIONS,
}

DEFAULT_MATERIAL_UNIT = "M³"


class Unset(BaseModel):
    kind: Literal["unset"] = "unset"


class Selected(BaseModel):
    kind: Literal["selected"] = "selected"
    value: str


class Override(BaseModel):
    kind: Literal["override"] = "override"
    text: str = ""


Choice = Union[Unset, Selected, Override]


class OptionView(BaseModel):
    """Bentuk tampilan untuk dropdown + kotak teks 'Lainnya'."""
    selection: Optional[str] = None
    custom_text: Optional[str] = None
    is_custom: bool = False
    placeholder: bool = True


def in_vocabulary(family, value: str) -> bool:
    return value in VOCABULARY[OptionFamily(family)]


def classify(family, value: Optional[str]) -> Choice:
    # String kosong selalu "belum diisi", bukan isian bebas
    if value is None or value == "":
        return Unset()
    if in_vocabulary(family, value):
        return Selected(value=value)
    return Override(text=value)


def resolve(choice: Choice) -> str:
    if isinstance(choice, Selected):
        return choice.value
    if isinstance(choice, Override):
        return choice.text
    return ""


def view(choice: Choice) -> OptionView:
    if isinstance(choice, Selected):
        return OptionView(selection=choice.value, placeholder=False)
    if isinstance(choice, Override):
        return OptionView(custom_text=choice.text, is_custom=True, placeholder=False)
    return OptionView()


def choose(family, selection: Optional[str]) -> Choice:
    """Pengguna memilih nilai dari dropdown. Teks 'Lainnya' lama dibuang."""
    if not selection:
        return Unset()
    if not in_vocabulary(family, selection):
        raise ValueError(f"'{selection}' tidak ada dalam daftar pilihan {OptionFamily(family).value}")
    return Selected(value=selection)


def choose_custom(text: str = "") -> Choice:
    """Pengguna memilih 'Lainnya' atau mengetik di kotak isian bebas."""
    return Override(text=text)


def material_unit(choice: Choice) -> Optional[str]:
    """Satuan bawaan untuk material dari daftar; None berarti biarkan pengguna."""
    if not isinstance(choice, Selected):
        return None
    return MATERIAL_DEFAULT_UNITS.get(choice.value.lower().strip(), DEFAULT_MATERIAL_UNIT)


def _coerce_choice(family, value):
    if isinstance(value, (Unset, Selected, Override)):
        choice = value
    elif value is None or isinstance(value, str):
        return classify(family, value)
    elif isinstance(value, dict):
        kind = value.get("kind")
        if kind == "selected":
            choice = Selected(value=value.get("value", ""))
        elif kind == "override":
            return Override(text=value.get("text", ""))
        elif kind == "unset":
            return Unset()
        else:
            raise ValueError(f"jenis pilihan tidak dikenal: {kind!r}")
    else:
        raise ValueError(f"nilai pilihan tidak valid: {value!r}")

    if isinstance(choice, Selected) and not in_vocabulary(family, choice.value):
        raise ValueError(f"'{choice.value}' tidak ada dalam daftar pilihan {OptionFamily(family).value}")
    return choice


def choice_field(family):
    """Anotasi field pydantic untuk satu keluarga pilihan."""
    family = OptionFamily(family)

    def coerce(value):
        return _coerce_choice(family, value)

    return Annotated[Choice, BeforeValidator(coerce)]


PeralatanChoice = choice_field(OptionFamily.PERALATAN)
AlatBeratChoice = choice_field(OptionFamily.ALAT_BERAT)
MaterialChoice = choice_field(OptionFamily.MATERIAL)
SedimenChoice = choice_field(OptionFamily.SEDIMEN)
