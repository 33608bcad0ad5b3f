# Models package
from app.models.auth import User, Role, UserRole, RoleName, PRIVILEGED_ROLES
from app.models.property import (
    Building, Apartment, ApartmentOwner, ApartmentRenter, BuildingManager
)
from app.models.proposal import (
    Proposal, ProposalResult, VotingMethodType, ProposalStatusType,
    TALLY_RULES_VERSION
)
from app.models.vote import Vote, VoteChoiceType

__all__ = [
    # Auth
    "User", "Role", "UserRole", "RoleName", "PRIVILEGED_ROLES",
    # Property
    "Building", "Apartment", "ApartmentOwner", "ApartmentRenter", "BuildingManager",
    # Proposal
    "Proposal", "ProposalResult", "VotingMethodType", "ProposalStatusType",
    "TALLY_RULES_VERSION",
    # Vote
    "Vote", "VoteChoiceType",
]
