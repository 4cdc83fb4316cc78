"""
respgate - API Request Models

Pydantic models for the Responses endpoints. Parameter validation is the
upstream's job; these models only give the well-known fields a shape and
carry everything else through untouched.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class CreateResponseRequest(BaseModel):
    """
    Body of ``POST /v1/responses``.

    Fields not declared here are forwarded to the upstream as
    ``extra_body`` so newly released parameters need no gateway change.
    """
    model_config = ConfigDict(extra="allow")

    model: Optional[str] = None
    input: Optional[Union[str, List[Any]]] = None
    instructions: Optional[str] = None
    stream: bool = False

    previous_response_id: Optional[str] = None
    conversation: Optional[Union[str, Dict[str, Any]]] = None
    store: Optional[bool] = None
    background: Optional[bool] = None
    metadata: Optional[Dict[str, str]] = None

    tools: Optional[List[Dict[str, Any]]] = None
    tool_choice: Optional[Union[str, Dict[str, Any]]] = None
    parallel_tool_calls: Optional[bool] = None
    max_tool_calls: Optional[int] = Field(default=None, ge=1)

    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_output_tokens: Optional[int] = Field(default=None, ge=1)
    top_logprobs: Optional[int] = None
    truncation: Optional[str] = None
    reasoning: Optional[Dict[str, Any]] = None
    text: Optional[Dict[str, Any]] = None
    include: Optional[List[str]] = None
    prompt: Optional[Dict[str, Any]] = None
    stream_options: Optional[Dict[str, Any]] = None
    service_tier: Optional[str] = None
    prompt_cache_key: Optional[str] = None
    safety_identifier: Optional[str] = None
    user: Optional[str] = None

    def upstream_params(self, default_model: str) -> Dict[str, Any]:
        """
        Keyword arguments for ``client.responses.create``.

        ``stream`` is left out; the route passes it explicitly.
        """
        params = self.model_dump(exclude_none=True, exclude={"stream"})
        extra = {key: params.pop(key) for key in list(self.model_extra or {}) if key in params}

        params.setdefault("model", default_model)
        if extra:
            params["extra_body"] = extra
        return params


class DeletedResponse(BaseModel):
    id: str
    object: str = "response.deleted"
    deleted: bool = True
