"""Dashboard with nested viewing/editing child states (one level deep)."""

import statechart_primitives as sc


class Dashboard:
    def __init__(self, child=None):
        self.child = child or Viewing()

    @sc.describe('Log out of the dashboard')
    @sc.action({'name': 'clearSession'})
    @sc.transition_to('LoggedOut')
    def logout(self):
        return LoggedOut()


class LoggedOut:
    login = sc.describe('Log back in', sc.transition_to(Dashboard, lambda self: Dashboard()))


class Viewing:
    edit = sc.guarded(
        {'name': 'canEdit'},
        sc.transition_to('Editing', lambda self: Editing()),
    )


class Editing:
    save = sc.describe(
        'Persist changes and go back to viewing',
        sc.invoke(
            {'src': 'saveDocument', 'onDone': Viewing, 'onError': 'Editing'},
            sc.transition_to(Viewing, lambda self: Viewing()),
        ),
    )

    cancel = sc.transition_to(Viewing, lambda self: Viewing())
