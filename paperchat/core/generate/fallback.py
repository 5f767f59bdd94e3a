from typing import Iterable

from paperchat.models.paper import PaperExtraction
from paperchat.models.query import DataRequirement


def fallback_answer(extraction: PaperExtraction, requirements: Iterable[DataRequirement]) -> str:
    """
    Canned answer built from paper metadata when generation fails.
    Author questions win over title questions; anything else gets an apology
    that still names the paper.
    """
    requirements = set(requirements)
    authors = ", ".join(a.name for a in extraction.authors)

    if DataRequirement.AUTHORS in requirements:
        if authors:
            return f"The authors of this paper are: {authors}."
        return "Author information is not available for this paper."

    if DataRequirement.TITLE in requirements:
        if not extraction.title:
            return "Title information is not available for this paper."
        answer = f"The title of this paper is: \"{extraction.title}\""
        if authors:
            answer += f" by {authors}"
        return answer + "."

    answer = "I apologize, but I'm experiencing difficulty processing your request at the moment. "
    if extraction.title:
        answer += f"This paper is titled \"{extraction.title}\""
        if authors:
            answer += f" by {authors}"
        answer += ". "
    return answer + "Please try rephrasing your question or try again later."
