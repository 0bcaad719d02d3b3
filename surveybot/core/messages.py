# Fixed user-visible texts. Raw errors never reach a contact; failures surface as APOLOGY.

NOT_REGISTERED = "Sorry, your number is not in our records."

OUT_OF_WORKFLOW = (
    "Thank you for your message! If you would like to take part in our survey, "
    "please wait for our invitation."
)

NO_QUESTIONS = "Sorry, no questions are available at the moment."

APOLOGY = "Sorry, something went wrong on our side. We will get back to you shortly."

THANKS = "Thank you very much for your answers! We appreciate your time and feedback."


def greeting(first_name: str) -> str:
    name = f" {first_name}" if first_name else ""
    return (
        f"Hello{name},\n\n"
        "We hope you are doing well! We would love to hear your opinion about our service."
    )


def survey_link(link: str) -> str:
    return (
        "Thank you! Here is the link to our questionnaire:\n\n"
        f"{link}\n\n"
        "It will only take a few minutes."
    )


def questions_intro(count: int) -> str:
    return (
        f"We are going to ask you {count} short questions.\n\n"
        "Simply reply with a message to each question."
    )


def question(index: int, total: int, text: str) -> str:
    """index is 0-based; contacts see 1-based numbering."""
    return f"Question {index + 1}/{total}: {text}"
