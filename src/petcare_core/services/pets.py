"""
Pet profiles.
"""

import uuid
from typing import List, Optional

from sqlalchemy import select

from ..exceptions import (
    AuthorizationException,
    BusinessRuleException,
    DuplicateResourceException,
)
from ..models.pet import Pet, PetGender
from ..models.user import User, UserRole
from ..schemas.pet import PetCreate, PetUpdate
from .base import BaseService


class PetService(BaseService):
    """
    Pet CRUD.

    Pet owners manage their own pets. Administrators manage any pet and
    create pets on behalf of an owner. Veterinarians read every pet but do
    not edit profiles.
    """

    async def create_pet(self, data: PetCreate) -> Pet:
        if self.actor.is_pet_owner():
            owner_id = self.actor.id
        elif self.actor.is_administrator():
            if data.owner_id is None:
                raise BusinessRuleException(
                    "owner_id is required when creating a pet for another user",
                    rule_name="pet_owner_required",
                )
            owner = await self._get_active(User, data.owner_id, "User")
            if owner.role != UserRole.PET_OWNER:
                raise BusinessRuleException(
                    "Pets can only belong to pet owners", rule_name="pet_owner_role"
                )
            owner_id = owner.id
        else:
            raise AuthorizationException(required=UserRole.PET_OWNER.value)

        if data.microchip_id:
            await self._check_microchip(data.microchip_id)

        fields = data.model_dump(exclude={"owner_id"})
        fields["gender"] = PetGender(fields["gender"])
        pet = Pet(owner_id=owner_id, created_by=self.actor.id, **fields)
        self.session.add(pet)
        await self._flush("Pet", "microchip_id", data.microchip_id)
        self.logger.info(f"Created pet {pet.id} for owner {owner_id}")
        return pet

    async def get_pet(self, pet_id: uuid.UUID) -> Pet:
        return await self._get_pet(pet_id)

    async def list_pets(
        self, owner_id: Optional[uuid.UUID] = None, species: Optional[str] = None
    ) -> List[Pet]:
        """
        Pet owners see their own pets; staff see all pets, optionally
        narrowed to one owner. Newest first.
        """
        stmt = select(Pet).where(Pet.create_query_filter_active())
        if self.actor.is_pet_owner():
            stmt = stmt.where(Pet.owner_id == self.actor.id)
        elif owner_id is not None:
            stmt = stmt.where(Pet.owner_id == owner_id)
        if species:
            stmt = stmt.where(Pet.species == species.lower())
        stmt = stmt.order_by(Pet.created_at.desc())
        return list((await self.session.execute(stmt)).scalars().all())

    async def update_pet(self, pet_id: uuid.UUID, data: PetUpdate) -> Pet:
        pet = await self._get_pet(pet_id, write=True)
        changes = data.model_dump(exclude_unset=True)

        microchip_id = changes.get("microchip_id")
        if microchip_id and microchip_id != pet.microchip_id:
            await self._check_microchip(microchip_id)
        if changes.get("gender") is not None:
            changes["gender"] = PetGender(changes["gender"])
        if "allergies" in changes and changes["allergies"] is None:
            changes["allergies"] = []

        pet.update_fields(**changes)
        pet.updated_by = self.actor.id
        await self._flush("Pet", "microchip_id", microchip_id)
        return pet

    async def delete_pet(self, pet_id: uuid.UUID) -> None:
        pet = await self._get_pet(pet_id, write=True)
        pet.soft_delete(deleted_by=self.actor.id)
        await self.session.flush()
        self.logger.info(f"Pet {pet.id} deleted by {self.actor.id}")

    async def _check_microchip(self, microchip_id: str) -> None:
        result = await self.session.execute(
            select(Pet.id).where(Pet.microchip_id == microchip_id)
        )
        if result.first() is not None:
            raise DuplicateResourceException(
                "Pet",
                "microchip_id",
                microchip_id,
                "A pet with this microchip ID already exists",
            )
