import enum


class GlobalRole(str, enum.Enum):
    MASTER = "MASTER"  # system-wide super authority, elevated manually
    REGIONAL = "REGIONAL"  # supervises the clubs linked to them
    USUARIO = "USUARIO"


class ClubRole(str, enum.Enum):
    ADMIN_CLUBE = "ADMIN_CLUBE"
    DIRETORIA = "DIRETORIA"
    CONSELHEIRO = "CONSELHEIRO"
    INSTRUTOR = "INSTRUTOR"
    DESBRAVADOR = "DESBRAVADOR"


class MembershipStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"


class ExamVisibility(str, enum.Enum):
    PUBLIC = "PUBLIC"
    CLUB_PRIVATE = "CLUB_PRIVATE"
    UNIT_PRIVATE = "UNIT_PRIVATE"


class QuestionType(str, enum.Enum):
    MULTIPLA_ESCOLHA = "MULTIPLA_ESCOLHA"
    DISSERTATIVA = "DISSERTATIVA"
    PRATICA = "PRATICA"
