"""Achievements that can be unlocked by completed ritual sessions."""

from enum import Enum
from typing import NamedTuple


class AchievementInfo(NamedTuple):
    title: str
    description: str
    points_reward: int


class Achievement(str, Enum):
    """Closed set of unlockable achievements.

    Once unlocked an achievement is never revoked, and its point reward is
    granted exactly once.
    """

    FIRST_LIBERATION = "first_liberation"
    BOND_CUTTER = "bond_cutter"
    ANCESTRAL_LIBERATOR = "ancestral_liberator"
    LIGHT_SOUL = "light_soul"
    VOW_KEEPER = "vow_keeper"
    STREAK_MASTER = "streak_master"
    INTENSITY_MASTER = "intensity_master"
    VOICE_MASTER = "voice_master"

    @property
    def info(self) -> AchievementInfo:
        return _ACHIEVEMENT_INFO[self]

    @property
    def title(self) -> str:
        return self.info.title

    @property
    def description(self) -> str:
        return self.info.description

    @property
    def points_reward(self) -> int:
        return self.info.points_reward


_ACHIEVEMENT_INFO = {
    Achievement.FIRST_LIBERATION: AchievementInfo(
        "First Liberation", "Complete your first liberation session", 100
    ),
    Achievement.BOND_CUTTER: AchievementInfo(
        "Bond Cutter", "Complete 3 liberation sessions", 150
    ),
    Achievement.ANCESTRAL_LIBERATOR: AchievementInfo(
        "Ancestral Liberator", "Release an ancestral loyalty bond", 200
    ),
    Achievement.LIGHT_SOUL: AchievementInfo(
        "Light Soul", "Complete 21 liberation sessions", 500
    ),
    Achievement.VOW_KEEPER: AchievementInfo(
        "Vow Keeper", "Honor a behavioral vow", 300
    ),
    Achievement.STREAK_MASTER: AchievementInfo(
        "Streak Master", "Keep a 7-day streak", 400
    ),
    Achievement.INTENSITY_MASTER: AchievementInfo(
        "Intensity Master", "Improve intensity by 3 points in one session", 250
    ),
    Achievement.VOICE_MASTER: AchievementInfo(
        "Voice Master", "Pass every voice reading in a session", 350
    ),
}
