"""
Pipeline Enumerations

Core enums for type safety and clear interface definitions across the pipeline.
Values match the canonical ski data schema so they serialize unchanged.
"""

from enum import Enum


class SourceType(str, Enum):
    """Data providers a canonical feature can be sourced from."""
    OPENSTREETMAP = "openstreetmap"
    SKIMAP_ORG = "skimap.org"


class FeatureType(str, Enum):
    """Canonical feature categories."""
    SKI_AREA = "skiArea"
    RUN = "run"
    LIFT = "lift"


class InputSkiAreaType(str, Enum):
    """Raw ski area inputs accepted by the ski area formatter."""
    OPENSTREETMAP_LANDUSE = "openstreetmap_landuse"
    SKIMAP_ORG = "skimap_org"


class Activity(str, Enum):
    """Ski area activities."""
    DOWNHILL = "downhill"
    NORDIC = "nordic"
    BACKCOUNTRY = "backcountry"


class Status(str, Enum):
    """Lifecycle status of a ski area, run or lift."""
    PROPOSED = "proposed"
    PLANNED = "planned"
    CONSTRUCTION = "construction"
    OPERATING = "operating"
    DISUSED = "disused"
    ABANDONED = "abandoned"


class RunUse(str, Enum):
    """Values of the piste:type tag understood by the run formatter."""
    DOWNHILL = "downhill"
    NORDIC = "nordic"
    SKITOUR = "skitour"
    SLED = "sled"
    HIKE = "hike"
    SLEIGH = "sleigh"
    ICE_SKATE = "ice_skate"
    SNOW_PARK = "snow_park"
    PLAYGROUND = "playground"
    FATBIKE = "fatbike"
    CONNECTION = "connection"


class RunDifficulty(str, Enum):
    NOVICE = "novice"
    EASY = "easy"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"
    FREERIDE = "freeride"
    EXTREME = "extreme"


class RunGrooming(str, Enum):
    CLASSIC = "classic"
    SKATING = "skating"
    CLASSIC_AND_SKATING = "classic+skating"
    SCOOTER = "scooter"
    MOGUL = "mogul"
    BACKCOUNTRY = "backcountry"


class RunConvention(str, Enum):
    """Regional difficulty color conventions."""
    EUROPE = "europe"
    NORTH_AMERICA = "north_america"
    JAPAN = "japan"


class LiftType(str, Enum):
    CABLE_CAR = "cable_car"
    GONDOLA = "gondola"
    MIXED_LIFT = "mixed_lift"
    CHAIR_LIFT = "chair_lift"
    DRAG_LIFT = "drag_lift"
    T_BAR = "t-bar"
    J_BAR = "j-bar"
    PLATTER = "platter"
    ROPE_TOW = "rope_tow"
    MAGIC_CARPET = "magic_carpet"
    ZIP_LINE = "zip_line"
    FUNICULAR = "funicular"
    RACK_RAILWAY = "rack_railway"
