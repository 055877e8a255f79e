"""Data fetching with invoked services, guarded retries and error recovery."""

from statechart_primitives import action, describe, guarded, invoke, transition_to


class Idle:
    fetch = describe(
        'Start fetching data from the API',
        action(
            {'name': 'startFetch', 'description': 'Track fetch initiation in analytics'},
            transition_to('Loading', lambda self, url: Loading(url)),
        ),
    )


class Loading:
    def __init__(self, url=''):
        self.url = url

    execute_fetch = describe(
        'Execute the fetch request',
        invoke(
            {'src': 'fetchData', 'onDone': lambda: Success, 'onError': lambda: Error,
             'description': 'Fetch data from the API endpoint'},
            lambda self: Success([]),
        ),
    )

    cancel = describe(
        'Cancel the ongoing fetch',
        action({'name': 'cancelFetch'}, transition_to(Idle, lambda self: Idle())),
    )


class Success:
    def __init__(self, data=None):
        self.data = data or []

    refetch = action({'name': 'logRefetch'}, transition_to(Loading, lambda self: Loading()))

    reset = describe('Clear data and return to idle', transition_to(Idle, lambda self: Idle()))

    @describe('Replace the loaded data')
    @transition_to('Success')
    def update_data(self, data):
        return Success(data)


class Error:
    def __init__(self, attempts=0):
        self.attempts = attempts
        self.dismiss = describe(
            'Dismiss the error and return to idle',
            action({'name': 'logErrorDismissed'}, transition_to(Idle, lambda self: Idle())),
        )

    retry = describe(
        'Retry the failed request',
        guarded(
            {'name': 'canRetry', 'description': 'Fewer than three attempts so far'},
            guarded('isOnline', transition_to('Retrying', lambda self: Retrying(self.attempts + 1))),
        ),
    )


class Retrying:
    def __init__(self, attempts=1):
        self.attempts = attempts

    execute_retry = invoke(
        dict(src='retryFetch', onDone=Success, onError=Error),
        lambda self: Success([]),
    )

    cancel = transition_to(Idle, lambda self: Idle())
