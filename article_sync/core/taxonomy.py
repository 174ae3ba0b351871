"""
Controlled vocabulary for article category tags.

Structure:
- Group (top level): e.g., "Tech", "Business"
- Tag (leaf): e.g., "Cybersecurity"

Tags are referenced everywhere in their flattened "Group: Tag" form,
which is also what gets stored on each article.
"""

from dataclasses import dataclass
from functools import cached_property
from typing import Iterable

DEFAULT_TAG = "General: Opinion & Analysis"
DEFAULT_GROUP = "General"
TAG_SEPARATOR = ": "


@dataclass(frozen=True)
class CategoryGroup:
    """Top level of the vocabulary."""

    name: str
    tags: tuple[str, ...]

    def qualified(self) -> tuple[str, ...]:
        """Tags of this group in "Group: Tag" form."""
        return tuple(f"{self.name}{TAG_SEPARATOR}{tag}" for tag in self.tags)


@dataclass(frozen=True)
class ControlledVocabulary:
    """The fixed set of tags the summarizer may assign."""

    groups: tuple[CategoryGroup, ...]
    default_tag: str = DEFAULT_TAG
    default_group: str = DEFAULT_GROUP

    def __post_init__(self):
        if self.default_tag not in self.tags:
            raise ValueError(f"Default tag {self.default_tag!r} is not in the vocabulary")

    @cached_property
    def tags(self) -> tuple[str, ...]:
        """All tags, flattened, in declaration order."""
        return tuple(tag for group in self.groups for tag in group.qualified())

    def is_valid(self, tag: str) -> bool:
        return tag in self.tags

    def prompt_listing(self) -> str:
        """One tag per line, for embedding in a prompt."""
        return "\n".join(self.tags)

    def primary_category(self, tags: Iterable[str]) -> str:
        """Group portion of the first tag, or the default group."""
        for tag in tags:
            group = tag.split(":", 1)[0].strip()
            return group or self.default_group
        return self.default_group


# ============================================================================
# VOCABULARY DEFINITION
# ============================================================================

TECH_GROUP = CategoryGroup(
    name="Tech",
    tags=(
        "Artificial Intelligence (AI)",
        "Machine Learning",
        "Software Development",
        "Cybersecurity",
        "Cloud Computing",
        "Gadgets & Devices",
        "Startups & Innovation",
        "Blockchain & Crypto",
        "Mobile & Apps",
        "Data Science",
        "Web Development",
        "Big Data",
        "Robotics",
        "AR/VR (Augmented/Virtual Reality)",
        "Tech Policy & Regulation",
    ),
)

BUSINESS_GROUP = CategoryGroup(
    name="Business",
    tags=(
        "Markets & Stocks",
        "Finance & Investing",
        "Leadership",
        "Management",
        "Marketing & Advertising",
        "E-commerce",
        "Mergers & Acquisitions",
        "Small Business",
        "Corporate Strategy",
        "Economics",
        "Real Estate",
        "Human Resources",
        "Supply Chain & Logistics",
        "Sustainability & ESG (Environmental, Social, Governance)",
        "Business Law",
    ),
)

ENTREPRENEURSHIP_GROUP = CategoryGroup(
    name="Entrepreneurship",
    tags=(
        "Startup Stories",
        "Fundraising & Venture Capital",
        "Pitching & Networking",
        "Growth Hacking",
        "Product Management",
        "Bootstrapping",
        "Founder Interviews",
        "Incubators & Accelerators",
        "Failure & Lessons Learned",
        "Side Hustles",
        "Remote Work & Digital Nomads",
    ),
)

GENERAL_GROUP = CategoryGroup(
    name="General",
    tags=(
        "World News",
        "Politics",
        "Science & Research",
        "Health & Wellness",
        "Education",
        "Lifestyle",
        "Opinion & Analysis",
        "Culture & Society",
        "Technology in Society",
        "Work & Careers",
        "Events & Conferences",
    ),
)


def build_vocabulary() -> ControlledVocabulary:
    """Build the vocabulary used by the sync job."""
    return ControlledVocabulary(
        groups=(TECH_GROUP, BUSINESS_GROUP, ENTREPRENEURSHIP_GROUP, GENERAL_GROUP),
    )


VOCABULARY = build_vocabulary()
