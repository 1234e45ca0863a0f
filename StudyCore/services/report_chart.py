import matplotlib
matplotlib.use('Agg')
from matplotlib.figure import Figure


def render_daily_chart(series, path):
	"""Render study vs wasted minutes per day (DayTotals series) to a PNG."""
	x = [d.day.strftime("%a") for d in series]
	study = [d.study / 60 for d in series]
	wasted = [d.wasted / 60 for d in series]
	positions = range(len(series))
	width = 0.4

	figure = Figure(figsize=(8, 4))
	figure.patch.set_facecolor('#E2E8F0')
	ax = figure.add_subplot(111)
	ax.set_facecolor('#F7FAFC')

	bars = ax.bar([p - width / 2 for p in positions], study, width, color='#8FAEC4',
		edgecolor='#7B9BB0', linewidth=1.5, alpha=0.9, label="Study Time")
	ax.bar([p + width / 2 for p in positions], wasted, width, color='#EF4444',
		edgecolor='#C53030', linewidth=1.5, alpha=0.8, label="Wasted Time")

	for bar, value in zip(bars, study):
		if value > 0:
			ax.text(bar.get_x() + bar.get_width()/2, bar.get_height() + 0.5,
				f'{value:.0f}m', ha='center', va='bottom',
				fontsize=9, fontweight='600', color='#1E3A56')

	ax.set_xticks(list(positions))
	ax.set_xticklabels(x)
	ax.set_ylabel("Minutes", fontsize=12, fontweight='600', color='#1E3A56', labelpad=10)
	ax.set_title("Daily Study Time", fontsize=14, fontweight='bold', color='#1E3A56', pad=15)
	ax.set_ylim(bottom=0)
	ax.grid(True, axis='y', alpha=0.25, linestyle='--', linewidth=0.8, color='#C9D8E2')
	ax.set_axisbelow(True)
	ax.tick_params(axis='both', colors='#1E3A56', labelsize=10)
	for spine in ['top', 'right']:
		ax.spines[spine].set_visible(False)
	for spine in ['bottom', 'left']:
		ax.spines[spine].set_color('#C9D8E2')
		ax.spines[spine].set_linewidth(1.2)
	ax.legend(frameon=False)

	figure.tight_layout()
	figure.savefig(path)
	return path
