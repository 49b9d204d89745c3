"""
Merge/decode engine for concatenated configuration fragments.

The concatenated stream is decoded as one flat YAML document, so a key
repeated across fragments resolves to its last occurrence. Unknown keys are
ignored and missing keys keep their zero value. String fields take the
scalar text as written (`0755` stays "0755", `yes` stays "yes"); integer and
boolean fields take the YAML-resolved value.
"""

import logging
from typing import Any, Dict, List

import yaml

from ..errors import ConfigParseError, ErrorCode
from ..models import MailwayConfig, build_config
from .loader import Fragment, concatenate

logger = logging.getLogger(__name__)

NULL_TAG = "tag:yaml.org,2002:null"

STRING_FIELDS = frozenset(
    name for name, field in MailwayConfig.model_fields.items() if field.annotation is str
)


def scalar_texts(node: yaml.Node) -> Dict[str, str]:
    """
    Collect the raw scalar text of every string field in a mapping node.

    Later occurrences of a key replace earlier ones. A null or non-scalar
    value drops the key, so the constructed value applies instead.
    """
    texts: Dict[str, str] = {}
    if not isinstance(node, yaml.MappingNode):
        return texts

    for key_node, value_node in node.value:
        if not isinstance(key_node, yaml.ScalarNode) or key_node.value not in STRING_FIELDS:
            continue
        if isinstance(value_node, yaml.ScalarNode) and value_node.tag != NULL_TAG:
            texts[key_node.value] = value_node.value
        else:
            texts.pop(key_node.value, None)

    return texts


class FragmentMerger:
    """Decodes concatenated fragments into a MailwayConfig."""

    def load_document(self, data: bytes) -> Any:
        """
        Parse the stream into a Python document, keeping string fields as written.

        Raises:
            ConfigParseError: On malformed YAML or a multi-document stream
        """
        try:
            loader = yaml.SafeLoader(data)
        except yaml.YAMLError as e:
            raise self._syntax_error(e) from e

        try:
            node = loader.get_single_node()
            if node is None:
                return None
            document = loader.construct_document(node)
        except yaml.YAMLError as e:
            raise self._syntax_error(e) from e
        finally:
            loader.dispose()

        if isinstance(document, dict):
            document.update(scalar_texts(node))
        return document

    @staticmethod
    def _syntax_error(e: yaml.YAMLError) -> ConfigParseError:
        line_number = None
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            line_number = mark.line + 1
        return ConfigParseError(f"failed to parse: {e}", line_number=line_number)

    def decode(self, data: bytes) -> MailwayConfig:
        """
        Decode a concatenated fragment stream.

        Args:
            data: Raw bytes of all fragments, in merge order

        Returns:
            New MailwayConfig record

        Raises:
            ConfigParseError: On malformed YAML, a non-mapping document or a type mismatch
        """
        document = self.load_document(data)

        if document is None:
            document = {}

        if not isinstance(document, dict):
            raise ConfigParseError(
                f"failed to parse: expected a mapping of keys, got {type(document).__name__}",
                code=ErrorCode.SCHEMA_ERROR
            )

        try:
            return build_config(document)
        except ConfigParseError as e:
            raise ConfigParseError(
                f"failed to parse: {e.message}",
                code=ErrorCode.SCHEMA_ERROR,
                fields=e.context.get("fields")
            ) from e

    def merge(self, fragments: List[Fragment]) -> MailwayConfig:
        """
        Merge fragments with last-fragment-wins semantics.

        Args:
            fragments: Fragments in merge order (earliest first)

        Returns:
            New MailwayConfig record

        Raises:
            ConfigParseError: If the merged document cannot be decoded
        """
        logger.debug(f"Merging {len(fragments)} fragments: {', '.join(f.name for f in fragments)}")
        return self.decode(concatenate(fragments))
