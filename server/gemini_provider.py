"""Gemini AI translation provider implementation."""

import json
import logging
import time
import google.generativeai as genai

from core.interfaces import TranslationProvider, TranslationError

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class GeminiProvider(TranslationProvider):
    """Translates phrases with a Gemini model."""

    def __init__(self, api_key: str, model_name: str = 'gemini-2.0-flash'):
        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(model_name)
        self.model_name = model_name
        self.stats = {'calls': 0, 'failures': 0, 'total_ms': 0}

    def _generate(self, prompt: str) -> tuple[str, int]:
        start_time = time.time()
        response = self.model.generate_content(prompt)
        end_time = time.time()
        ms = int((end_time - start_time) * 1000)
        return (response.text, ms)

    @staticmethod
    def _extract_json(text: str) -> str:
        text = text.replace('```json', '').replace('```', '')
        return text[text.find('{'):text.rfind('}') + 1]

    def translate(self, text: str, source_lang: str, target_lang: str) -> tuple[dict, int]:
        prompt = f"""
            Translate the following text from language code "{source_lang}" to language code "{target_lang}".

            Text: "{text}"

            Respond with ONLY a JSON object in this exact format:
            {{
                "translated_text": "the translation",
                "phonetic": "pronunciation of the translation written in Latin letters"
            }}

            Keep the meaning and tone of the original. Do not add explanations.
            Return ONLY the JSON object, no other text, no markdown formatting.
        """
        self.stats['calls'] += 1
        try:
            response, ms = self._generate(prompt)
        except Exception as e:
            self.stats['failures'] += 1
            logger.error(f"Translation request failed: {type(e).__name__}: {e}")
            raise TranslationError(f"Translation request failed: {e}") from e
        self.stats['total_ms'] += ms

        raw = self._extract_json(response)
        try:
            result = json.loads(raw)
        except ValueError as e:
            self.stats['failures'] += 1
            logger.error(f"Failed to parse translation: {e}")
            logger.error(f"Raw response:\n{response}")
            if '{' not in response:
                logger.error("Diagnosis: No opening brace '{' found in response")
            elif '}' not in response:
                logger.error("Diagnosis: No closing brace '}' found in response")
            raise TranslationError("Could not parse translation response") from e

        if not isinstance(result, dict) or not result.get('translated_text'):
            self.stats['failures'] += 1
            logger.warning(f"Translation response missing text: {raw}")
            raise TranslationError("Translation response did not contain a translation")

        return ({
            'translated_text': str(result['translated_text']).strip(),
            'phonetic': str(result.get('phonetic') or '').strip()
        }, ms)

    def get_stats(self) -> dict:
        calls = self.stats['calls']
        return {
            **self.stats,
            'model': self.model_name,
            'avg_ms': round(self.stats['total_ms'] / calls, 1) if calls > 0 else 0
        }
