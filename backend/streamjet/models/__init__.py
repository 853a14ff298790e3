from streamjet.models.listener import Listener
from streamjet.models.listening import ActiveListener, ListeningSession
from streamjet.models.reaction import ReactionType, StationReaction, UserStationStats

__all__ = [
    # Listener models
    "Listener",
    # Listening models
    "ListeningSession",
    "ActiveListener",
    # Reaction models
    "ReactionType",
    "StationReaction",
    "UserStationStats",
]
