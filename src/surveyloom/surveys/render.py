"""Server-side HTML for the questionnaire page.

All schema-derived text is escaped; theme tokens are only ever placed in
inline style values, so a bad token degrades the look but not the page.
"""

from __future__ import annotations

from html import escape
from typing import Any, List, Optional

from .controller import FieldController
from .fields import slider_bounds
from .form import FormAggregator, SubmissionResult
from .lifecycle import LifecycleState, QuestionnaireLifecycle
from .schema import PageSpec, QuestionType, SurveySpec


STYLES = """
body { font-family: system-ui, sans-serif; margin: 0; padding: 40px 20px; display: flex; justify-content: center; }
main { width: 100%; max-width: 760px; }
.survey-card { width: 100%; padding: 2rem; box-sizing: border-box; box-shadow: 0 10px 30px rgba(0,0,0,0.1);
  transition: all 0.5s ease-in-out; opacity: 0; transform: translateY(20px); border-radius: var(--border-radius); }
.survey-card.visible { opacity: 1; transform: translateY(0); }
.survey-card h1 { margin-top: 0; font-size: 2.2rem; }
.survey-card p.description { font-size: 1.1rem; opacity: 0.9; margin-bottom: 2rem; }
.page-title { font-size: 1.5rem; font-weight: bold; margin-top: 2rem; margin-bottom: 1.5rem;
  padding-bottom: 0.5rem; border-bottom: 2px solid var(--primary-color); }
.question-box { margin-bottom: 1.5rem; }
.question-label { display: block; font-size: 1.2rem; margin-bottom: 0.75rem; color: var(--question-text-color); }
.required-mark { color: var(--primary-color); }
.input-base { width: 100%; padding: 12px; border: 1px solid #ccc; box-sizing: border-box; font-size: 1rem;
  border-radius: var(--border-radius); }
.input-base:focus { outline: none; border-color: var(--primary-color); box-shadow: 0 0 0 3px var(--primary-color-alpha); }
textarea.input-base { min-height: 120px; resize: vertical; }
.radio-group, .checkbox-group { display: flex; flex-direction: column; gap: 0.8rem; }
.option-label { display: flex; align-items: center; cursor: pointer; color: var(--answer-text-color); }
.option-label input { margin-right: 10px; }
.slider-container { display: flex; align-items: center; gap: 1rem; }
.slider-container input[type="range"] { flex-grow: 1; }
.slider-value { font-weight: bold; min-width: 30px; text-align: center; color: var(--primary-color); }
.star-rating { display: inline-flex; flex-direction: row-reverse; }
.star-rating input { display: none; }
.star-rating label { cursor: pointer; color: #ccc; font-size: 2em; margin-right: 5px; transition: color 0.2s; }
.star-rating input:checked ~ label, .star-rating label:hover, .star-rating label:hover ~ label { color: var(--primary-color); }
.form-error { color: #d8000c; font-size: 0.9em; margin-top: 5px; }
.unsupported { opacity: 0.7; font-style: italic; }
.submit-btn { padding: 12px 25px; font-size: 1.1rem; font-weight: bold; border: none; cursor: pointer;
  border-radius: var(--border-radius); margin-top: 2rem; }
.submission-result { margin-top: 20px; padding: 15px; border-radius: 8px; background-color: #e6ffe6;
  border: 1px solid #c3e6cb; color: #121212; white-space: pre-wrap; word-break: break-all; }
.next-survey-btn { position: fixed; bottom: 30px; right: 30px; padding: 15px 30px; font-size: 1.1rem; font-weight: bold;
  border: none; cursor: pointer; border-radius: 50px; box-shadow: 0 4px 15px rgba(0,0,0,0.2); z-index: 1000; }
.next-survey-btn:disabled { cursor: wait; opacity: 0.7; }
.loader { width: 60px; height: 60px; border-radius: 50%; display: inline-block; border: 3px solid;
  border-color: #888 #888 transparent transparent; box-sizing: border-box; animation: rotation 1s linear infinite; }
@keyframes rotation { 0% { transform: rotate(0deg); } 100% { transform: rotate(360deg); } }
.error-message { background-color: #ffdddd; color: #d8000c; padding: 1rem; border: 1px solid #d8000c;
  border-radius: 8px; text-align: center; }
"""


def _attr(value: Any) -> str:
    return escape(str(value), quote=True)


def _number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _error(ctrl: FieldController) -> str:
    if not ctrl.error:
        return ""
    return f"<p class='form-error' id='{_attr(ctrl.id)}-error'>{escape(ctrl.error)}</p>"


def _text_input(ctrl: FieldController) -> str:
    q = ctrl.question
    required = " required" if q.required else ""
    if q.kind is QuestionType.MULTI_LINE_TEXT:
        return f"<textarea name='{_attr(q.id)}' class='input-base'{required}>{escape(ctrl.value or '')}</textarea>"
    return f"<input type='text' name='{_attr(q.id)}' value='{_attr(ctrl.value or '')}' class='input-base'{required}/>"


def _dropdown(ctrl: FieldController) -> str:
    q = ctrl.question
    items = ["<option value=''>Select...</option>"]
    for opt in q.options or []:
        selected = " selected" if ctrl.value == opt.value else ""
        items.append(f"<option value='{_attr(opt.value)}'{selected}>{escape(opt.label)}</option>")
    return f"<select name='{_attr(q.id)}' class='input-base'>{''.join(items)}</select>"


def _choice_group(ctrl: FieldController, input_type: str) -> str:
    q = ctrl.question
    picked = ctrl.value if isinstance(ctrl.value, list) else [ctrl.value]
    rows = []
    for opt in q.options or []:
        checked = " checked" if opt.value in picked else ""
        rows.append(
            f"<label class='option-label'>"
            f"<input type='{input_type}' name='{_attr(q.id)}' value='{_attr(opt.value)}'{checked}/>"
            f"<span>{escape(opt.label)}</span>"
            f"</label>"
        )
    group = "checkbox-group" if input_type == "checkbox" else "radio-group"
    return f"<div class='{group}'>{''.join(rows)}</div>"


def _slider(ctrl: FieldController) -> str:
    q = ctrl.question
    lo, hi, step = slider_bounds(q)
    return (
        f"<div class='slider-container'>"
        f"<input type='range' name='{_attr(q.id)}' min='{_number(lo)}' max='{_number(hi)}' step='{_number(step)}'"
        f" value='{_number(ctrl.value)}' oninput='this.nextElementSibling.value = this.value'/>"
        f"<output class='slider-value'>{_number(ctrl.value)}</output>"
        f"</div>"
    )


def _star_rating(ctrl: FieldController) -> str:
    # Hover preview is pure CSS; only a click (checked radio) becomes the value
    q = ctrl.question
    stars = []
    for rating in range(q.count, 0, -1):
        input_id = f"{q.id}-star-{rating}"
        checked = " checked" if ctrl.value == rating else ""
        stars.append(
            f"<input type='radio' id='{_attr(input_id)}' name='{_attr(q.id)}' value='{rating}'{checked}/>"
            f"<label for='{_attr(input_id)}' title='{rating}'>&#9733;</label>"
        )
    return f"<div class='star-rating'>{''.join(stars)}</div>"


def render_widget(ctrl: FieldController) -> str:
    kind = ctrl.question.kind if ctrl.supported else None
    if kind in (QuestionType.SINGLE_LINE_TEXT, QuestionType.MULTI_LINE_TEXT):
        body = _text_input(ctrl)
    elif kind is QuestionType.SINGLE_CHOICE:
        body = _choice_group(ctrl, "radio")
    elif kind is QuestionType.MULTI_CHOICE:
        body = _choice_group(ctrl, "checkbox")
    elif kind is QuestionType.DROPDOWN_CHOICE:
        body = _dropdown(ctrl)
    elif kind is QuestionType.NUMERIC_SLIDER:
        body = _slider(ctrl)
    elif kind is QuestionType.STAR_RATING:
        body = _star_rating(ctrl)
    else:
        return "<p class='unsupported'>Unsupported question type.</p>"
    return body + _error(ctrl)


def render_question(ctrl: FieldController) -> str:
    q = ctrl.question
    mark = " <span class='required-mark'>*</span>" if q.required else ""
    return (
        f"<div class='question-box' data-question-id='{_attr(q.id)}'>"
        f"<label class='question-label'>{escape(q.label)}{mark}</label>"
        f"{render_widget(ctrl)}"
        f"</div>"
    )


def render_page_section(page: PageSpec, form: FormAggregator) -> str:
    questions = "".join(render_question(form.controller(q.id)) for q in page.questions)
    return f"<section><h2 class='page-title'>{escape(page.title)}</h2>{questions}</section>"


def render_submission(submission: Optional[SubmissionResult]) -> str:
    if submission is None or not submission.accepted:
        return ""
    return (
        "<div class='submission-result'>"
        "<h3>Submission Successful!</h3>"
        f"<pre>{escape(submission.to_json())}</pre>"
        "</div>"
    )


def card_style(survey: SurveySpec) -> str:
    theme = survey.theme
    declarations = [
        ("--primary-color", theme.primary_color),
        ("--primary-color-alpha", f"{theme.primary_color}33"),
        ("--border-radius", theme.border_radius),
        ("--question-text-color", theme.question_text_color),
        ("--answer-text-color", theme.answer_text_color),
        ("background-color", theme.background_color),
        ("color", theme.text_color),
        ("font-family", theme.font_family),
    ]
    return _attr("; ".join(f"{name}: {value}" for name, value in declarations))


def render_card(
    survey: SurveySpec,
    form: FormAggregator,
    *,
    visible: bool,
    submission: Optional[SubmissionResult] = None,
) -> str:
    theme = survey.theme
    pages = "".join(render_page_section(page, form) for page in survey.pages)
    visible_cls = " visible" if visible else ""
    button_style = _attr(f"background-color: {theme.primary_color}; color: {theme.background_color}")
    return (
        f"<div class='survey-card{visible_cls}' style='{card_style(survey)}'>"
        f"<h1>{escape(survey.title)}</h1>"
        f"<p class='description'>{escape(survey.description)}</p>"
        f"<form method='post' action='/survey/submit' novalidate>"
        f"{pages}"
        f"<button type='submit' class='submit-btn' style='{button_style}'>Submit Survey</button>"
        f"</form>"
        f"{render_submission(submission)}"
        f"</div>"
    )


def render_next_button(lifecycle: QuestionnaireLifecycle) -> str:
    style = ""
    if lifecycle.current is not None:
        theme = lifecycle.current.theme
        style = _attr(f"background-color: {theme.primary_color}; color: {theme.background_color}")
    disabled = " disabled" if lifecycle.busy else ""
    return (
        f"<form method='post' action='/survey/next'>"
        f"<button type='submit' class='next-survey-btn' style='{style}'"
        f" aria-label='Generate New Survey'{disabled}>{escape(lifecycle.action_label)}</button>"
        f"</form>"
    )


def render_page(lifecycle: QuestionnaireLifecycle) -> str:
    """The whole document for the lifecycle's current state."""
    body: List[str] = []
    if lifecycle.busy or lifecycle.state is LifecycleState.IDLE:
        body.append("<div class='loader'></div>")
    elif lifecycle.state is LifecycleState.ERROR:
        body.append(f"<div class='error-message'>{escape(lifecycle.error_message or '')}</div>")
    elif lifecycle.current is not None and lifecycle.form is not None:
        body.append(
            render_card(
                lifecycle.current,
                lifecycle.form,
                visible=lifecycle.visible,
                submission=lifecycle.submission,
            )
        )
    body.append(render_next_button(lifecycle))
    title = lifecycle.current.title if lifecycle.current is not None else "Survey"
    # Reload while the card is hidden so the fade-in and late loads show up
    refresh = "" if lifecycle.visible or lifecycle.state is LifecycleState.ERROR else "<meta http-equiv='refresh' content='1'/>"
    return f"""
        <html>
          <head>
            <meta charset='utf-8' />
            {refresh}
            <title>{escape(title)}</title>
            <style>{STYLES}</style>
          </head>
          <body style='background-color: {_attr(lifecycle.page_background())}'>
            <main>
              {''.join(body)}
            </main>
          </body>
        </html>
        """
