"""panewatch: classify the state of coding agents running in terminal panes."""
