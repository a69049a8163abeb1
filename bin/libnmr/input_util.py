#!/usr/bin/env python3

import inquirer

def confirm(text, default=True):
    """
    Simply ask the user a yes or no question.

    Args:
        text - The text to use in the prompt
        default - (optional) The value to use if nothing is given
    """
    questions = [
        inquirer.Confirm('confirm', message=text, default=default),
    ]
    answers = inquirer.prompt(questions)
    if answers == None:
        return False
    return answers['confirm']

def select_from(query_message, options):
    """
    Have the user select from an Array of Strings. Returns False if the prompt
    was cancelled.

    Args:
        query_message - A query message to display to the user when selecting
        options - The options to select from
    """
    questions = [
        inquirer.List('s',
                    message=query_message,
                    choices=options
                )
    ]
    answers = inquirer.prompt(questions)
    if answers == None:
        return False
    return answers['s']
