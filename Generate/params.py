from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator, model_validator

from Generate.constants import DOOR_HEIGHT_DEFAULT, ROOM_HEIGHT_DEFAULT, TEMPLATE_DOOR_WIDTH


class Wall(str, Enum):
    N = "N"
    S = "S"
    E = "E"
    W = "W"


class Door(BaseModel):
    """Opening on one local (pre-rotation) wall of a template.

    ``offset`` is measured from the wall's start corner: the local -x end for
    N/S walls and the local -z end for W/E walls.
    """

    model_config = ConfigDict(frozen=True)

    wall: Wall
    offset: float = Field(default=0.0, ge=0)
    width: float = Field(default=TEMPLATE_DOOR_WIDTH, gt=0)
    height: float = Field(default=DOOR_HEIGHT_DEFAULT, gt=0)

    @property
    def center(self) -> float:
        return self.offset + self.width / 2


class Size(BaseModel):
    w: float = Field(gt=0)
    d: float = Field(gt=0)
    h: float = Field(default=ROOM_HEIGHT_DEFAULT, gt=0)


class RoomTemplate(BaseModel):
    id: str
    type: Optional[str] = None
    # A template without a size cannot be placed; it is reported as malformed.
    size: Optional[Size] = None
    doors: List[Door] = Field(default_factory=list)


class Position(BaseModel):
    x: float = 0.0
    z: float = 0.0


class Slot(BaseModel):
    slotId: str
    type: Optional[str] = None
    pick: Union[str, List[str], None] = None
    pos: Position = Field(default_factory=Position)
    rotate: int = 0
    attachTo: Optional[str] = None
    optional: bool = False

    @field_validator("slotId")
    @classmethod
    def _non_empty_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("slotId cannot be empty")
        return value

    @field_validator("rotate")
    @classmethod
    def _cardinal(cls, value: int) -> int:
        if value % 90 != 0:
            raise ValueError("rotate must be a multiple of 90 degrees")
        return value % 360

    @property
    def template_id(self) -> Optional[str]:
        if isinstance(self.pick, list):
            return self.pick[0] if self.pick else None
        return self.pick


class Pattern(BaseModel):
    id: str
    allowMirrorX: bool = False
    allowMirrorZ: bool = False
    slots: List[Slot] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_attachments(self) -> "Pattern":
        seen: set[str] = set()
        for slot in self.slots:
            if slot.slotId in seen:
                raise ValueError(f"Duplicate slotId '{slot.slotId}'")
            if slot.attachTo is not None:
                if slot.attachTo == slot.slotId:
                    raise ValueError(f"Slot '{slot.slotId}' cannot attach to itself")
                if slot.attachTo not in seen:
                    raise ValueError(
                        f"Slot '{slot.slotId}' attaches to '{slot.attachTo}' which is not an earlier slot"
                    )
            seen.add(slot.slotId)
        return self


class TemplateLibrary(RootModel[Dict[str, RoomTemplate]]):
    @field_validator("root")
    @classmethod
    def _keys_match_ids(cls, value: Dict[str, RoomTemplate]) -> Dict[str, RoomTemplate]:
        for key, tpl in value.items():
            if key != tpl.id:
                raise ValueError(f"Template key '{key}' does not match its id '{tpl.id}'")
        return value
