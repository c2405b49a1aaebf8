"""
Model registry

Importing this module registers every table on ``Base.metadata``; used by
``init_db`` and the Alembic environment.
"""

from app.domain.auth.models import UserAccount  # noqa: F401
from app.domain.profiles.models import (  # noqa: F401
    Profile, DoctorProfile, PatientProfile, CareLink, UserSettings
)
from app.domain.appointments.models import Appointment  # noqa: F401
from app.domain.documents.models import Document, Folder, DocumentShare  # noqa: F401
from app.domain.chat.models import (  # noqa: F401
    Conversation, ConversationParticipant, Message, UserStatus
)
from app.domain.notifications.models import Notification  # noqa: F401
