"""
Application logic for Map of Us.

Configuration, validation, cooldown limiting, and the state controllers
behind the map, search box, memory form and sign-in form.
"""
