"""
Prompt registry implementation for MCP.

This module provides the registry that owns the server's prompts and produces
prompt messages for ``prompts/get``. Prompts are either backed by a handler
function or by Jinja2 message templates, which can also be loaded from YAML
or plain text files.
"""

import inspect
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import jinja2
import structlog
import yaml
from pydantic import ValidationError

from mcpkit.protocol.errors import (
    AlreadyExistsError,
    InternalError,
    InvalidDefinitionError,
    InvalidParamsError,
    NotFoundError,
)
from mcpkit.prompts.base import VALID_ROLES, Prompt, PromptMessage, PromptResponse

logger = structlog.get_logger(__name__)

PromptHandler = Callable[[str, Dict[str, str]], Any]
ChangeCallback = Callable[[str], None]

PROMPT_FILE_SUFFIXES = (".yaml", ".yml", ".txt", ".md")

_environment = jinja2.Environment(
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
)


def extract_arguments(raw_arguments: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """
    Extract prompt arguments from prompts/get parameters.

    Only string values under the ``arguments`` key are kept.

    Args:
        raw_arguments: The request params, or None

    Returns:
        Flat mapping of argument names to string values
    """
    if not isinstance(raw_arguments, Mapping):
        return {}
    nested = raw_arguments.get("arguments")
    if not isinstance(nested, Mapping):
        return {}
    return {key: value for key, value in nested.items() if isinstance(value, str)}


def template_handler(
    messages: Sequence[Tuple[str, str]],
    description: str = "",
) -> PromptHandler:
    """
    Create a prompt handler that renders Jinja2 message templates.

    Args:
        messages: (role, template) pairs, rendered in order
        description: Description returned with the messages

    Returns:
        Prompt handler producing text messages

    Raises:
        InvalidDefinitionError: If a template does not compile
    """
    try:
        compiled = [(role, _environment.from_string(source)) for role, source in messages]
    except jinja2.TemplateSyntaxError as e:
        raise InvalidDefinitionError(f"Invalid prompt template: {e}")

    def render(name: str, arguments: Dict[str, str]) -> PromptResponse:
        return PromptResponse(
            description=description,
            messages=[
                PromptMessage.text(role, template.render(**arguments))
                for role, template in compiled
            ],
        )

    return render


class PromptRegistry:
    """
    Registry of prompts keyed by name.

    Prompts are listed in registration order. The optional change callback is
    called with the prompt name after each successful registration.
    """

    def __init__(self, on_change: Optional[ChangeCallback] = None) -> None:
        """
        Initialize the prompt registry.

        Args:
            on_change: Called with a prompt name whenever a prompt is added
        """
        self._prompts: Dict[str, Tuple[Prompt, PromptHandler]] = {}
        self._lock = threading.RLock()
        self._on_change = on_change

    def register(self, prompt: Prompt, handler: PromptHandler) -> None:
        """
        Register a prompt.

        Args:
            prompt: Prompt metadata
            handler: Callable taking (name, arguments) and returning a
                PromptResponse or a mapping with the same shape

        Raises:
            InvalidDefinitionError: If the name is empty or the handler is not callable
            AlreadyExistsError: If a prompt with the same name exists
        """
        if not prompt.name:
            raise InvalidDefinitionError("Prompt name cannot be empty")
        if not callable(handler):
            raise InvalidDefinitionError(f"Prompt handler must be callable: {prompt.name}")

        with self._lock:
            if prompt.name in self._prompts:
                raise AlreadyExistsError(f"Prompt already exists: {prompt.name}")
            self._prompts[prompt.name] = (prompt, handler)

        logger.debug("Prompt registered", prompt=prompt.name)
        if self._on_change is not None:
            self._on_change(prompt.name)

    def register_template(
        self,
        prompt: Prompt,
        messages: Sequence[Tuple[str, str]],
    ) -> None:
        """
        Register a prompt whose messages are Jinja2 templates.

        Args:
            prompt: Prompt metadata; its arguments become template variables
            messages: (role, template) pairs
        """
        for role, _ in messages:
            if role not in VALID_ROLES:
                raise InvalidDefinitionError(f"Invalid role: {role}")
        self.register(prompt, template_handler(messages, prompt.description))

    def get(self, name: str) -> Prompt:
        """
        Get prompt metadata by name.

        Raises:
            NotFoundError: If no prompt has that name
        """
        return self._lookup(name)[0]

    def list(self) -> List[Dict[str, Any]]:
        """List prompts in registration order."""
        with self._lock:
            prompts = [prompt for prompt, _ in self._prompts.values()]
        return [prompt.to_dict() for prompt in prompts]

    async def get_content(
        self,
        name: str,
        raw_arguments: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Generate the messages of a prompt.

        Args:
            name: Prompt name
            raw_arguments: The prompts/get params; string values under their
                ``arguments`` key are passed to the handler

        Returns:
            Prompt response document with description and messages

        Raises:
            NotFoundError: If the prompt does not exist
            InvalidParamsError: If a required argument is missing
            InternalError: If the handler returns no messages or an invalid role
        """
        prompt, handler = self._lookup(name)
        arguments = extract_arguments(raw_arguments)

        for argument in prompt.arguments:
            if argument.required and argument.name not in arguments:
                raise InvalidParamsError(f"Missing required argument: {argument.name}")

        result = handler(name, arguments)

        # Handle coroutines
        if inspect.isawaitable(result):
            result = await result

        response = self._coerce_response(name, result)
        if not response.messages:
            raise InternalError("Invalid prompt response: missing messages")
        for message in response.messages:
            if message.role not in VALID_ROLES:
                raise InternalError(f"Invalid role: {message.role}")
        return response.to_dict()

    def load_prompt_from_file(self, file_path: Union[str, Path]) -> Prompt:
        """
        Load a template prompt from a file and register it.

        YAML files hold ``name``, ``description``, ``arguments`` and a list of
        ``messages`` with ``role`` and ``content`` templates. Any other file is
        a single user message template named after the file.

        Args:
            file_path: Path to the file

        Returns:
            The registered prompt

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is invalid
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"File '{file_path}' does not exist")

        if path.suffix.lower() in (".yaml", ".yml"):
            with open(path, "r", encoding="utf-8") as f:
                try:
                    data = yaml.safe_load(f)
                except yaml.YAMLError as e:
                    raise ValueError(f"Error parsing YAML file '{file_path}': {e}")

            if not isinstance(data, dict):
                raise ValueError(f"Invalid prompt file '{file_path}': expected a mapping")
            raw_messages = data.pop("messages", None)
            if not isinstance(raw_messages, list) or not raw_messages:
                raise ValueError(f"Invalid prompt file '{file_path}': missing 'messages'")

            try:
                prompt = Prompt.model_validate(data)
                messages = [(str(item["role"]), str(item["content"])) for item in raw_messages]
            except (ValidationError, KeyError, TypeError) as e:
                raise ValueError(f"Invalid prompt file '{file_path}': {e}")
        else:
            prompt = Prompt(name=path.stem, description=f"Prompt loaded from {path.name}")
            messages = [("user", path.read_text(encoding="utf-8"))]

        self.register_template(prompt, messages)
        return prompt

    def load_prompts_from_directory(self, directory: Union[str, Path]) -> List[Prompt]:
        """
        Load every prompt file in a directory.

        Files that fail to load are logged and skipped.

        Raises:
            NotADirectoryError: If the directory does not exist
        """
        path = Path(directory)
        if not path.is_dir():
            raise NotADirectoryError(f"Directory '{directory}' does not exist")

        prompts = []
        for file_path in sorted(path.iterdir()):
            if file_path.suffix.lower() not in PROMPT_FILE_SUFFIXES:
                continue
            try:
                prompts.append(self.load_prompt_from_file(file_path))
            except (ValueError, InvalidDefinitionError, AlreadyExistsError) as e:
                logger.warning("Skipping prompt file", path=str(file_path), error=str(e))
        return prompts

    def _lookup(self, name: str) -> Tuple[Prompt, PromptHandler]:
        with self._lock:
            entry = self._prompts.get(name)
        if entry is None:
            raise NotFoundError(f"Prompt not found: {name}")
        return entry

    @staticmethod
    def _coerce_response(name: str, result: Any) -> PromptResponse:
        if isinstance(result, PromptResponse):
            return result
        if isinstance(result, Mapping):
            try:
                return PromptResponse.model_validate(dict(result))
            except ValidationError as e:
                raise InternalError(f"Invalid prompt response from {name}", details=str(e))
        raise InternalError(
            f"Invalid prompt response from {name}: expected PromptResponse, "
            f"got {type(result).__name__}"
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._prompts)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._prompts
