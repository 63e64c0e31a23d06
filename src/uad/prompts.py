# uad: Load prompt templates from uad/resources via importlib.resources, optionally formatting them with dynamic values.

from importlib import resources


def get_prompt(name: str, **kwargs) -> str:
    """
    Load a text prompt from the uad resources directory.

    If kwargs are provided, apply str.format(**kwargs) to the content so prompts can
    contain placeholders (e.g., {project_name}). Braces in JSON examples must be
    doubled in templates that are formatted. Without kwargs the raw text is returned.
    """
    data = resources.files("uad").joinpath("resources").joinpath(name).read_text(encoding="utf-8")
    if kwargs:
        return data.format(**kwargs)
    return data
