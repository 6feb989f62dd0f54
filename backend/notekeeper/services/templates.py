"""
NoteKeeper Backend: Note Template Catalogue
============================================

Fixed set of starter templates. Content may contain a `{date}` placeholder,
filled with the current date when a template is fetched. A note created from
a template stores the template id in Note.template.
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from notekeeper.exceptions import NotFoundError
from notekeeper.models.types import utcnow


@dataclass(frozen=True)
class NoteTemplate:
    id: str
    name: str
    icon: str
    category: str
    content: str

    def render(self, today: Optional[date] = None) -> "NoteTemplate":
        """Copy of the template with `{date}` replaced."""
        today = today or utcnow().date()
        return NoteTemplate(
            id=self.id,
            name=self.name,
            icon=self.icon,
            category=self.category,
            content=self.content.replace("{date}", today.isoformat()),
        )


TEMPLATES: List[NoteTemplate] = [
    NoteTemplate(
        id="meeting",
        name="Meeting Notes",
        icon="👥",
        category="Work",
        content=(
            "# Meeting Notes\n\n"
            "**Date:** {date}\n"
            "**Attendees:** \n"
            "**Agenda:**\n\n"
            "## Discussion Points\n- \n\n"
            "## Action Items\n- [ ] \n- [ ] \n\n"
            "## Next Steps\n- \n\n"
            "## Notes\n"
        ),
    ),
    NoteTemplate(
        id="daily-journal",
        name="Daily Journal",
        icon="📔",
        category="Personal",
        content=(
            "# Daily Journal - {date}\n\n"
            "## Today's Highlights\n- \n\n"
            "## Mood: 😊\n\n"
            "## Gratitude\n- \n- \n- \n\n"
            "## Tomorrow's Goals\n- \n- \n\n"
            "## Reflection\n"
        ),
    ),
    NoteTemplate(
        id="project-plan",
        name="Project Planning",
        icon="📋",
        category="Work",
        content=(
            "# Project Plan\n\n"
            "**Project Name:** \n"
            "**Start Date:** {date}\n"
            "**Deadline:** \n\n"
            "## Objectives\n- \n\n"
            "## Milestones\n- [ ] \n- [ ] \n- [ ] \n\n"
            "## Resources Needed\n- \n\n"
            "## Risks & Mitigation\n- \n\n"
            "## Success Criteria\n- \n"
        ),
    ),
    NoteTemplate(
        id="book-review",
        name="Book Review",
        icon="📚",
        category="Personal",
        content=(
            "# Book Review\n\n"
            "**Title:** \n"
            "**Author:** \n"
            "**Rating:** ⭐⭐⭐⭐⭐\n"
            "**Date Finished:** {date}\n\n"
            "## Summary\n\n\n"
            "## Key Takeaways\n- \n- \n- \n\n"
            "## Favorite Quotes\n> \n\n"
            "## Would I Recommend?\nYes/No - \n\n"
            "## Notes\n"
        ),
    ),
    NoteTemplate(
        id="recipe",
        name="Recipe",
        icon="🍳",
        category="Personal",
        content=(
            "# Recipe Name\n\n"
            "**Prep Time:** \n"
            "**Cook Time:** \n"
            "**Servings:** \n"
            "**Difficulty:** Easy/Medium/Hard\n\n"
            "## Ingredients\n- \n- \n- \n\n"
            "## Instructions\n1. \n2. \n3. \n\n"
            "## Notes\n- \n\n"
            "## Rating: ⭐⭐⭐⭐⭐\n"
        ),
    ),
    NoteTemplate(
        id="travel-plan",
        name="Travel Planning",
        icon="✈️",
        category="Personal",
        content=(
            "# Travel Plan\n\n"
            "**Destination:** \n"
            "**Dates:** \n"
            "**Budget:** \n\n"
            "## Itinerary\n### Day 1\n- \n\n### Day 2\n- \n\n"
            "## Packing List\n- [ ] \n- [ ] \n- [ ] \n\n"
            "## Important Info\n- **Hotel:** \n- **Flight:** \n- **Emergency Contacts:** \n\n"
            "## Places to Visit\n- \n- \n\n"
            "## Local Food to Try\n- \n"
        ),
    ),
    NoteTemplate(
        id="workout",
        name="Workout Log",
        icon="💪",
        category="Personal",
        content=(
            "# Workout Log - {date}\n\n"
            "**Duration:** \n"
            "**Type:** Cardio/Strength/Mixed\n\n"
            "## Exercises\n"
            "### Exercise 1\n- Sets: \n- Reps: \n- Weight: \n\n"
            "### Exercise 2\n- Sets: \n- Reps: \n- Weight: \n\n"
            "## Notes\n- How I felt: \n- Energy level: \n- Next time: \n\n"
            "## Progress Photos\n(Add photos here)\n"
        ),
    ),
    NoteTemplate(
        id="idea-brainstorm",
        name="Idea Brainstorming",
        icon="💡",
        category="Ideas",
        content=(
            "# Brainstorming Session\n\n"
            "**Topic:** \n"
            "**Date:** {date}\n\n"
            "## Initial Thoughts\n- \n\n"
            "## Ideas\n1. \n2. \n3. \n4. \n5. \n\n"
            "## Best Ideas ⭐\n- \n\n"
            "## Next Steps\n- [ ] \n- [ ] \n\n"
            "## Resources/Research Needed\n- \n"
        ),
    ),
]

_TEMPLATES_BY_ID = {template.id: template for template in TEMPLATES}


def list_templates(category: Optional[str] = None) -> List[NoteTemplate]:
    """Rendered templates, optionally filtered by category (case-insensitive)."""
    wanted = (category or "").strip().lower()
    return [
        template.render()
        for template in TEMPLATES
        if not wanted or wanted == "all" or template.category.lower() == wanted
    ]


def get_template(template_id: str) -> NoteTemplate:
    """
    Raises:
        NotFoundError: unknown template id
    """
    template = _TEMPLATES_BY_ID.get(template_id)
    if template is None:
        raise NotFoundError(resource="template", resource_id=template_id)
    return template.render()
