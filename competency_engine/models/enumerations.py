from enum import Enum, IntEnum


class GradeKey(str, Enum):
    RED = "RED"          # Insuficiente
    YELLOW = "YELLOW"    # Suficiente
    GREEN = "GREEN"      # Notable
    BLUE = "BLUE"        # Sobresaliente


class Trend(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    STABLE = "STABLE"


class Course(IntEnum):
    FIFTH = 5
    SIXTH = 6


class XadeCode(str, Enum):
    IN = "IN"   # Insuficiente
    SU = "SU"   # Suficiente
    BI = "BI"   # Ben
    NT = "NT"   # Notable
    SB = "SB"   # Sobresaliente


class XadeColumn(str, Enum):
    LINGUAS_G = "Linguas_G"
    LINGUA_C = "Lingua_C"
    MATEMATICAS = "Matematicas"
    C_NATURAIS = "C_Naturais"
    C_SOCIAIS = "C_Sociais"
    ARTISTICA = "Artística"
    E_FISICA = "E_Fisica"
    VALORES = "Valores"


class EvidenceConfidence(str, Enum):
    HIGH = "high"      # 3+ recent observations
    MEDIUM = "medium"  # 2 recent observations
    LOW = "low"
