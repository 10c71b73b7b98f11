import logging
import re
import typing_extensions

from rich.style import Style

# https://github.com/Textualize/rich/blob/master/rich/color.py

_STYLE_FALLBACK = Style(color="purple")

_DICT_STYLES = {
    "COLOR_INFO": Style(color="blue"),
    "COLOR_SUCCESS": Style(color="green"),
    "COLOR_FAILED": Style(color="orange1"),
    "COLOR_ERROR": Style(color="red"),
}


class ColorFormatter(logging.Formatter):
    RE_TAG = re.compile(r"^\[(?P<tag>COLOR_[A-Z]+)\](?P<msg>.*$)", re.DOTALL)
    """
    Example: [COLOR_INFO]This is a message
    tag: COLOR_INFO
    msg: This is a message
    """

    @typing_extensions.override
    def format(self, record: logging.LogRecord) -> str:
        if not isinstance(record.msg, str):
            return super().format(record)
        match = self.RE_TAG.match(record.msg)
        if match is None:
            return super().format(record)

        tag = match.group("tag")
        msg = match.group("msg")
        msg_before = record.msg
        try:
            record.msg = msg
            color = _DICT_STYLES.get(tag, _STYLE_FALLBACK)

            message = super().format(record)
            return color.render(message)
        finally:
            record.msg = msg_before

