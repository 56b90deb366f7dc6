"""The HTML document to print and the Page.printToPDF parameters it asks for."""

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class HtmlDocument:
    content: str
    print_parameters: Dict[str, Any] = field(default_factory=dict)

    def render(self):
        return self.content

    def get_print_parameters(self):
        return dict(self.print_parameters)
