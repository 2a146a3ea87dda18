import pytest

from mcq_scraper.locator import OPTION_MARKERS
from mcq_scraper.snapshot import load_snapshot

GREEN = "rgb(34, 197, 94)"
WHITE = "rgb(255, 255, 255)"
EXPLANATION_TINT = "rgb(240, 253, 244)"


def option_buttons(options, correct=None, markers=OPTION_MARKERS):
    buttons = []
    for marker, key, text in zip(markers, "abcd", options):
        bg = GREEN if key == correct else WHITE
        buttons.append(
            f'<button class="option" data-computed-bg="{bg}">'
            f"<span>{marker}</span> {text}</button>"
        )
    return "".join(buttons)


def question_html(
    number,
    text,
    options=("Option one", "Option two", "Option three", "Option four"),
    correct=None,
    explanation=None,
    images=(),
    svg=None,
):
    """One question block shaped like the live exam page."""
    imgs = "".join(f'<img src="{src}" alt="">' for src in images)
    explanation_html = ""
    if explanation:
        explanation_html = (
            f'<div class="bg-green-50 p-3" data-computed-bg="{EXPLANATION_TINT}">'
            f"{explanation}</div>"
        )
    return (
        '<div class="question-container">'
        '<div class="flex justify-between">'
        f'<div class="text-lg font-medium">{number}. {text}</div>'
        '<span class="tag">Admission Ventures</span>'
        '<span class="score">-0.5/1</span>'
        "</div>"
        f"{imgs}{svg or ''}"
        f'<div class="grid grid-cols-2">{option_buttons(options, correct)}</div>'
        f"{explanation_html}"
        "</div>"
    )


def page_html(*blocks, title="Blood Circulation"):
    return (
        "<html><head><title>Exam</title></head><body>"
        f"<h1>{title}</h1>"
        '<main class="questions">' + "".join(blocks) + "</main>"
        "</body></html>"
    )


@pytest.fixture
def three_question_page():
    return page_html(
        question_html(1, "Which chamber pumps blood to the body?"),
        question_html(
            2,
            "Which vessel carries oxygenated blood from the lungs?",
            options=("Aorta", "Vena cava", "Pulmonary vein", "Pulmonary artery"),
            correct="c",
            explanation="The pulmonary vein returns oxygenated blood to the left atrium.",
        ),
        question_html(3, "How many chambers does the human heart have?"),
    )


@pytest.fixture
def three_question_soup(three_question_page):
    return load_snapshot(three_question_page)
