# plugins -- built-in plugins shipped with the platform
#
# Each module exposes a ``manifest`` and a ``create_module()`` factory:
#   company_metrics   -- funding stats, funding journey, health score
#   investor_insights -- portfolio analytics for investors
#   timeline          -- milestones and company history
#   formatting        -- shared currency / date helpers
