#!/usr/bin/env python3

import os
import re
from libnmr import file_filter

# a directive is a name, optional arguments and a ";" or "{" terminator
directive_needle = re.compile(r'^([$\w][^\s;{}]*)((?:\s+[^;{}]*?)?)\s*([;{])(.*)$')
closing_needle = re.compile(r'^(\})(.*)$')
disabled_suffix_needle = re.compile(r'^#\s*DISABLED\b')

class Directive():
    """
    One configuration line parsed far enough to switch it on or off. Only the
    directive grammar is understood; anything that does not parse stays opaque
    text.

    The text after the terminator is split into the rest of the line and a
    trailing comment starting at the first "#".
    """
    def __init__(self, indent, disabled, body, trailing, newline):
        self.indent = indent
        self.disabled = disabled
        self.body = body
        self.newline = newline
        index = trailing.find('#')
        if index == -1:
            self.rest = trailing.rstrip()
            self.comment = ''
        else:
            self.rest = trailing[:index].rstrip()
            self.comment = trailing[index:]

    def name(self):
        return self.body.split()[0].rstrip(';{')

    def argument(self):
        """The text between the directive name and its terminator."""
        return self.body[len(self.name()):].rstrip(';{').strip()

    def text(self):
        return self.body + self.rest

    def has_disabled_suffix(self):
        return disabled_suffix_needle.match(self.comment) != None

    def enabled_line(self):
        """
        The line with its disable marker and trailing comment removed.
        """
        return self.indent + self.text() + self.newline

    def brace_depth(self):
        text = self.text()
        return text.count('{') - text.count('}')


def parse_line(line):
    """
    Parse a configuration line into a Directive, or return False if the line
    (with any leading "#" markers removed) is not a directive.

    Args:
        line - A line of nginx configuration including its line ending
    """
    newline = ''
    text = line
    if text.endswith('\r\n'):
        newline = '\r\n'
    elif text.endswith('\n'):
        newline = '\n'
    text = text[:len(text) - len(newline)]
    stripped = text.lstrip()
    indent = text[:len(text) - len(stripped)]
    disabled = False
    if stripped.startswith('#'):
        disabled = True
        stripped = stripped.lstrip('#')
        # "# " is the marker, deeper indentation belongs to the line
        if stripped.startswith(' '):
            stripped = stripped[1:]
        inner = stripped.lstrip()
        indent += stripped[:len(stripped) - len(inner)]
        stripped = inner
    match = directive_needle.match(stripped)
    if match == None:
        match = closing_needle.match(stripped)
        if match == None:
            return False
        return Directive(indent, disabled, match.group(1), match.group(2), newline)
    end = match.end(3)
    return Directive(indent, disabled, stripped[:end], stripped[end:], newline)

def loads_artifact(directive, artifact_name):
    """
    Check if a directive is a load_module line for the given .so file name,
    whatever directory it points into.
    """
    if directive == False or directive.name() != 'load_module':
        return False
    path = directive.argument().strip('"\'')
    return os.path.basename(path) == artifact_name

def printable(line):
    """
    A configuration line for display, without its line ending. Bytes that
    were not valid text when the file was read show up as replacement
    characters.
    """
    text = line.rstrip('\r\n')
    return text.encode('utf-8', 'surrogateescape').decode('utf-8', 'replace')

class EnableLoadModules(file_filter.FilterIfExists):
    """
    Switch on the load_module directive of each given artifact. For an
    artifact that has no active directive, the first disabled one is enabled.
    An artifact that is already loaded is left alone, so the file never ends
    up loading the same module twice.
    """
    def __init__(self, filename, artifact_names):
        self.artifact_names = artifact_names
        self.enabled = []
        self.already_active = []
        self.missing = []
        super().__init__(filename)

    def filter_stream(self, in_stream, out_stream):
        lines = in_stream.readlines()
        directives = [parse_line(line) for line in lines]
        self.enabled = []
        self.already_active = []
        self.missing = []
        for name in self.artifact_names:
            candidates = [i for i, d in enumerate(directives) if loads_artifact(d, name)]
            if len(candidates) == 0:
                self.missing.append(name)
                continue
            if any(not directives[i].disabled for i in candidates):
                self.already_active.append(name)
                continue
            first = candidates[0]
            lines[first] = directives[first].enabled_line()
            self.enabled.append(printable(lines[first]))
        for line in lines:
            out_stream.write(line)
        return len(self.enabled) > 0

class EnableFeatureDirectives(file_filter.FilterIfExists):
    """
    Switch on the directives that configure a module's feature, for example
    the geoip2 database block. A disabled line is enabled when it is a
    directive that names the keyword as a word, or when it mentions the
    keyword anywhere and carries a "# DISABLED" suffix. The disabled body of a
    block opened that way is enabled up to its closing brace. load_module
    lines are left to EnableLoadModules.
    """
    def __init__(self, filename, keyword):
        self.keyword = keyword
        self.word_needle = re.compile(r'\b' + re.escape(keyword) + r'\b')
        self.changed_lines = []
        super().__init__(filename)

    def matches(self, directive):
        if directive == False or not directive.disabled:
            return False
        if directive.name() == 'load_module':
            return False
        if directive.has_disabled_suffix() and self.keyword in directive.text():
            return True
        return self.word_needle.search(directive.body) != None

    def filter_stream(self, in_stream, out_stream):
        self.changed_lines = []
        depth = 0
        for line in in_stream:
            directive = parse_line(line)
            enable = False
            if depth > 0:
                if directive != False and directive.disabled:
                    enable = True
                elif directive != False:
                    # the block ended without a disabled closing brace
                    depth = 0
            if not enable and self.matches(directive):
                enable = True
            if enable:
                depth += directive.brace_depth()
                if depth < 0:
                    depth = 0
                line = directive.enabled_line()
                self.changed_lines.append(printable(line))
            out_stream.write(line)
        return len(self.changed_lines) > 0

def active_load_modules(filename):
    """
    Get the active load_module lines of a configuration file.

    Args:
        filename - The nginx configuration file
    """
    def is_load_module(line):
        directive = parse_line(line)
        return directive != False and not directive.disabled and directive.name() == 'load_module'
    lines = file_filter.get_trimmed_file_as_array(filename)
    if lines == False:
        return []
    return [line for line in lines if is_load_module(line)]

def module_state(filename, artifact_name):
    """
    Get 'active', 'disabled' or 'absent' for an artifact's load_module line.

    Args:
        filename - The nginx configuration file
        artifact_name - The .so file name of the module
    """
    state = 'absent'
    if not os.path.exists(filename):
        return state
    with open(filename, errors='replace') as conf:
        for line in conf:
            directive = parse_line(line)
            if loads_artifact(directive, artifact_name):
                if not directive.disabled:
                    return 'active'
                state = 'disabled'
    return state
