from dataclasses import dataclass
from typing import Callable, Generic, Optional, Sequence, TypeVar

from passvault.utils.user_input import ask_index
from passvault.vault.errors import InputError

T = TypeVar("T")

NO_MATCHES = "No matches found"


@dataclass
class MatchCapabilities(Generic[T]):
    """
    What a show/edit/delete flow does with the search results.

    render:          print the numbered list when there are several matches
    act_on_single:   called directly when there is exactly one match
    act_on_indexed:  called with the list and the chosen index
    act_on_all:      bulk action for 'a'/'all'; None disables it
    """
    render: Callable[[Sequence[T]], None]
    act_on_single: Callable[[T], Optional[str]]
    act_on_indexed: Callable[[Sequence[T], int], Optional[str]]
    act_on_all: Optional[Callable[[Sequence[T]], Optional[str]]] = None


def resolve_matches(matches: Sequence[T], caps: MatchCapabilities[T],
                    ask: Callable[[str, int], int | str | None] = ask_index) -> Optional[str]:
    """
    Act on zero, one or many search results.

    No matches returns NO_MATCHES. One match goes straight to
    `act_on_single`. Several matches are rendered and the user picks an
    index, 'a' for the bulk action or 'q' to cancel (returns None).

    Raises:
        InputError: An out of range index, unknown input, or 'a' when the
            flow has no bulk action. Nothing has been changed at that point.
    """
    if not matches:
        return NO_MATCHES

    if len(matches) == 1:
        return caps.act_on_single(matches[0])

    caps.render(matches)
    prompt = f"\nSelect 0 - {len(matches) - 1}"
    prompt += ", (a)ll" if caps.act_on_all else ""
    prompt += " or (q)uit: "

    choice = ask(prompt, len(matches))
    if choice is None:
        return None
    if choice == "all":
        if caps.act_on_all is None:
            raise InputError("'all' is not available here")
        return caps.act_on_all(matches)
    return caps.act_on_indexed(matches, choice)
