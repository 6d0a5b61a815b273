"""
Vertex AI REST client used for follow-up questions and evaluation.
"""
import json
import logging
from typing import Optional, Dict, Any, List

import requests
import google.auth
import google.auth.transport.requests
from google.oauth2 import service_account

from ...config import VERTEX_LOCATION, MODEL_NAME, LLM_TIMEOUT, MAX_OUTPUT_TOKENS

logger = logging.getLogger("llm_client")

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


def load_google_credentials(credentials_json: Optional[str], scopes: List[str]):
    """Service-account file when given, application default credentials otherwise."""
    if credentials_json:
        return service_account.Credentials.from_service_account_file(credentials_json, scopes=scopes)
    creds, _ = google.auth.default(scopes=scopes)
    return creds


class VertexRestClient:
    """REST-based client for Vertex AI Gemini models."""

    def __init__(self,
                 project: str,
                 location: str = VERTEX_LOCATION,
                 model: str = MODEL_NAME,
                 credentials_json: Optional[str] = None,
                 timeout: int = LLM_TIMEOUT):
        self.project = project
        self.location = location
        self.model = model
        self.credentials_json = credentials_json
        self.base_url = f"https://{self.location}-aiplatform.googleapis.com/v1"
        self.model_resource = f"projects/{self.project}/locations/{self.location}/publishers/google/models/{self.model}"
        self.timeout = timeout
        self._credentials = None

    def _auth_header(self) -> str:
        """Bearer token, refreshed when missing or expired."""
        if self._credentials is None:
            self._credentials = load_google_credentials(self.credentials_json, [CLOUD_PLATFORM_SCOPE])
        if not self._credentials.valid:
            self._credentials.refresh(google.auth.transport.requests.Request())
        return f"Bearer {self._credentials.token}"

    def generate_content(
        self,
        prompt_text: str,
        temperature: float = 0.0,
        max_output_tokens: int = MAX_OUTPUT_TOKENS,
        stop_sequences: Optional[List[str]] = None,
    ) -> str:
        """Generate content using the Vertex AI REST API."""
        url = f"{self.base_url}/{self.model_resource}:generateContent"

        body: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt_text}]}],
            "generationConfig": {
                "temperature": float(temperature),
                "maxOutputTokens": int(max_output_tokens),
            },
        }
        if stop_sequences:
            body["generationConfig"]["stopSequences"] = list(stop_sequences)

        headers = {
            "Authorization": self._auth_header(),
            "Content-Type": "application/json",
        }

        resp = requests.post(url, headers=headers, json=body, timeout=self.timeout)
        if resp.status_code >= 400:
            raise RuntimeError(f"Vertex REST error {resp.status_code}: {resp.text}")

        return self._parse_response_text(resp.json())

    def _parse_response_text(self, resp_json: Dict[str, Any]) -> str:
        """
        Extract the text of the first candidate.

        Raises:
            RuntimeError: If the response carries no text (blocked or empty)
        """
        for cand in resp_json.get("candidates", []):
            for part in cand.get("content", {}).get("parts", []):
                if isinstance(part, dict) and isinstance(part.get("text"), str):
                    return part["text"]
        if isinstance(resp_json.get("text"), str):
            return resp_json["text"]
        raise RuntimeError(f"Vertex response had no text: {json.dumps(resp_json)[:500]}")

    def generate_json(self, prompt: str, max_output_tokens: int = MAX_OUTPUT_TOKENS) -> Dict[str, Any]:
        """
        Generate a JSON object from the LLM with tolerant parsing.
        Appends an instruction to respond with JSON only, and strips code
        fences or chatter around the object.

        Raises:
            ValueError: If no JSON object can be recovered
        """
        prompt_json = prompt.strip() + "\n\nRespond ONLY with minified JSON (no code fences)."
        text = self.generate_content(prompt_json, temperature=0.0, max_output_tokens=max_output_tokens)
        logger.debug("Raw LLM output: %s", repr(text))

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("json.loads failed: %s", e)

        start = text.find("{")
        end = text.rfind("}")
        if start != -1 and end > start:
            try:
                return json.loads(text[start:end + 1])
            except json.JSONDecodeError as e:
                logger.warning("Substring parse also failed: %s", e)

        raise ValueError(f"LLM did not return valid JSON: {text}")
